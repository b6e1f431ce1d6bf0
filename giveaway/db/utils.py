from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

_RELATIVE_SQLITE = "sqlite:///./"


def resolve_sqlite_url(url: str, project_root: Path) -> str:
    """Anchor a relative SQLite URL (``sqlite:///./name.db``) at ``project_root``.

    Any other URL, including absolute SQLite paths, is returned as given.
    """
    if not url.startswith(_RELATIVE_SQLITE):
        return url
    db_path = (project_root / url[len(_RELATIVE_SQLITE) :]).resolve()
    return f"sqlite:///{db_path}"


def dt_iso(dt: Optional[datetime]) -> Optional[str]:
    """Render ``dt`` as a UTC ISO 8601 string for JSON payloads.

    SQLite hands back naive datetimes; those are taken to be UTC already.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()
