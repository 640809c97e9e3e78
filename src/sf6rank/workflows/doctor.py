"""Environment diagnostics for the ``sf6rank doctor`` command."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .profile_config import DEFAULT_LOCALE, SUPPORTED_LOCALES
from .settings import ProfileConfig


@dataclass
class DoctorCheck:
    name: str
    ok: bool
    level: str = "warn"
    detail: Optional[str] = None
    remedy: Optional[str] = None
    value: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["status"] = "ok" if payload.pop("ok") else "missing"
        return {k: v for k, v in payload.items() if v is not None}


def redact_value(value: str, keep: int = 4) -> str:
    raw = (value or "").strip()
    if not raw:
        return ""
    if len(raw) <= keep * 2:
        return "*" * len(raw)
    return f"{raw[:keep]}...{raw[-keep:]}"


def playwright_available() -> bool:
    from . import browser

    return browser.PlaywrightPageProvider.available()


def path_writable(path: Path) -> bool:
    """True when ``path`` can be written, creating missing parents if needed."""

    probe = path
    while not probe.exists():
        if probe.parent == probe:
            return False
        probe = probe.parent
    return os.access(probe, os.W_OK)


def _checks(config: ProfileConfig, locale: str) -> List[DoctorCheck]:
    locale_ok = locale in SUPPORTED_LOCALES
    checks = [
        DoctorCheck(
            "SF6_COOKIE",
            config.has_cookie,
            detail="Authenticated requests enabled" if config.has_cookie else "Requests will hit the login wall",
            remedy="Copy the Cookie header of a logged-in Buckler session into SF6_COOKIE.",
            value=redact_value(config.cookie) or None,
        ),
        DoctorCheck(
            "playwright",
            playwright_available(),
            level="warn" if config.enable_screenshot_output else "info",
            detail="Required for screenshots",
            remedy="Install Playwright and run `playwright install chromium`.",
        ),
        DoctorCheck(
            "SF6_LOCALE",
            locale_ok,
            value=locale,
            detail=None if locale_ok else "Unsupported locale; commands exit with code 2",
            remedy=None if locale_ok else f"Set SF6_LOCALE to one of {', '.join(SUPPORTED_LOCALES)}.",
        ),
        DoctorCheck(
            "SF6_BINDINGS_PATH",
            path_writable(config.bindings_path),
            detail=str(config.bindings_path),
            remedy="Point SF6_BINDINGS_PATH at a writable location.",
        ),
    ]
    if locale_ok and locale != DEFAULT_LOCALE:
        checks.append(
            DoctorCheck(
                "extraction_vocabulary",
                False,
                level="info",
                detail=f"Text extraction matches {DEFAULT_LOCALE} page copy; other locales may not parse",
                remedy=f"Set SF6_LOCALE={DEFAULT_LOCALE} for text output.",
            )
        )
    return checks


def build_doctor_report(config: ProfileConfig, locale: Optional[str] = None) -> Dict[str, Any]:
    """Report on ``config``; ``locale`` is the raw requested value when it differs."""

    checks = _checks(config, locale or config.locale)
    return {
        "generated_at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
        "ok": all(check.ok for check in checks if check.level == "warn"),
        "checks": [check.to_dict() for check in checks],
    }


def format_doctor_report(report: Dict[str, Any]) -> str:
    lines = ["sf6rank doctor", f"Generated: {report.get('generated_at')}", "Secrets are redacted.", ""]
    for check in report.get("checks", []):
        label = f"{check['name']}: {check['status']}"
        if check.get("value"):
            label += f" ({check['value']})"
        lines.append(f"- [{check['level']}] {label}")
        for key in ("detail", "remedy"):
            if check.get(key):
                lines.append(f"  {key}: {check[key]}")
    return "\n".join(lines) + "\n"


__all__ = ["DoctorCheck", "redact_value", "playwright_available", "build_doctor_report", "format_doctor_report"]
