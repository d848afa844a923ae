import os
from pathlib import Path
from typing import Optional


def to_abs_path(p: Optional[str | os.PathLike], base: Optional[Path] = None) -> Optional[Path]:
    """Absolute form of p: '~' expanded, relative paths taken from base (default CWD)."""
    if not p:
        return None
    pp = Path(p).expanduser()
    if not pp.is_absolute():
        pp = (base or Path.cwd()) / pp
    return pp.resolve()
