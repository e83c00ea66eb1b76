import os
from pathlib import Path
from tempfile import mkstemp


def atomic_write_bytes(path: Path, data: str | bytes, encoding: str = "utf-8") -> None:
    """Replaces path with data so readers only ever see the old or the new content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = mkstemp(suffix=".tmp", prefix=path.name + ".", dir=path.parent)
    tmp_path = Path(tmp)
    try:
        with os.fdopen(fd, "wb") as f:
            match data:
                case str():
                    _ = f.write(data.encode(encoding))
                case bytes():
                    _ = f.write(data)
            f.flush()
            os.fsync(f.fileno())

        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)
