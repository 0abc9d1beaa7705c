"""Known IMAP/SMTP server settings keyed by email domain."""

from __future__ import annotations

from dataclasses import dataclass

from .config import ServerSettings


@dataclass(frozen=True, slots=True)
class ProviderPreset:
    """Server settings of a well-known mail provider."""

    name: str
    imap: ServerSettings
    smtp: ServerSettings
    hint: str | None = None


def _preset(
    name: str,
    imap_host: str,
    smtp_host: str,
    *,
    smtp_port: int = 465,
    hint: str | None = None,
) -> ProviderPreset:
    return ProviderPreset(
        name=name,
        imap=ServerSettings(host=imap_host, port=993, secure=True),
        smtp=ServerSettings(host=smtp_host, port=smtp_port, secure=smtp_port == 465),
        hint=hint,
    )


_APP_PASSWORD_HINT = "Use an app-specific password"
_GMAIL = _preset(
    "Gmail",
    "imap.gmail.com",
    "smtp.gmail.com",
    hint="Enable IMAP in Gmail settings and sign in with an app password",
)
_QQ = _preset(
    "QQ Mail",
    "imap.qq.com",
    "smtp.qq.com",
    hint="Enable IMAP/SMTP in QQ Mail settings and use the authorization code",
)
_OUTLOOK = _preset(
    "Outlook",
    "outlook.office365.com",
    "smtp.office365.com",
    smtp_port=587,
    hint="SMTP uses STARTTLS on port 587; an app password is recommended",
)
_YAHOO = _preset(
    "Yahoo",
    "imap.mail.yahoo.com",
    "smtp.mail.yahoo.com",
    hint=_APP_PASSWORD_HINT,
)
_SINA = _preset(
    "Sina Mail", "imap.sina.com", "smtp.sina.com", hint="Enable IMAP/SMTP in settings"
)
_ICLOUD = _preset(
    "iCloud",
    "imap.mail.me.com",
    "smtp.mail.me.com",
    smtp_port=587,
    hint="Generate an app-specific password at appleid.apple.com",
)
_NETEASE_HINT = "Enable IMAP/SMTP in NetEase Mail and set an authorization password"

PRESETS: dict[str, ProviderPreset] = {
    "gmail.com": _GMAIL,
    "googlemail.com": _GMAIL,
    "qq.com": _QQ,
    "foxmail.com": _QQ,
    "foxmail.com.cn": _QQ,
    "163.com": _preset("NetEase 163", "imap.163.com", "smtp.163.com", hint=_NETEASE_HINT),
    "126.com": _preset("NetEase 126", "imap.126.com", "smtp.126.com", hint=_NETEASE_HINT),
    "yeah.net": _preset("NetEase yeah", "imap.yeah.net", "smtp.yeah.net", hint=_NETEASE_HINT),
    "outlook.com": _OUTLOOK,
    "hotmail.com": _OUTLOOK,
    "live.com": _OUTLOOK,
    "office365.com": _OUTLOOK,
    "yahoo.com": _YAHOO,
    "yahoo.com.cn": _YAHOO,
    "sina.com": _SINA,
    "sina.cn": _SINA,
    "139.com": _preset(
        "China Mobile 139", "imap.139.com", "smtp.139.com", hint="Enable IMAP/SMTP"
    ),
    "189.cn": _preset(
        "189 Mail", "imap.189.cn", "smtp.189.cn", hint="Enable IMAP/SMTP in settings"
    ),
    "aliyun.com": _preset(
        "Aliyun Mail", "imap.aliyun.com", "smtp.aliyun.com", hint="Enable IMAP/SMTP in settings"
    ),
    "icloud.com": _ICLOUD,
    "me.com": _ICLOUD,
    "mail.com": _preset("Mail.com", "imap.mail.com", "smtp.mail.com"),
}


def email_domain(email: str) -> str | None:
    """Return the lower-cased domain of ``email``, or ``None`` if it has none."""
    local, sep, domain = email.strip().rpartition("@")
    if not sep or not local or not domain:
        return None
    return domain.lower()


def preset_for_email(email: str) -> ProviderPreset | None:
    """Return the preset matching the domain of ``email``, if one is known."""
    domain = email_domain(email)
    if domain is None:
        return None
    return PRESETS.get(domain)


def supported_domains() -> list[str]:
    return sorted(PRESETS)


__all__ = [
    "PRESETS",
    "ProviderPreset",
    "email_domain",
    "preset_for_email",
    "supported_domains",
]
