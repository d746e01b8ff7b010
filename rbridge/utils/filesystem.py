#!filepath: rbridge/utils/filesystem.py
import gzip
import shutil
from pathlib import Path

from rbridge.utils.errors import ResourceError
from rbridge.utils.logger import logs


class FileSystem:
    """
    File helpers for model artifacts.
    - directories created on demand
    - atomic writes (tmp file -> rename)
    - copies, optionally through gzip; renames
    - every OSError surfaces as ResourceError(operation, path)
    """

    @staticmethod
    def ensure_dir(path: str | Path) -> Path:
        p = Path(path)
        if not p.exists():
            try:
                p.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ResourceError("create directory", p, e) from e
            logs.debug(f"[FS] created directory: {p}")
        return p

    @staticmethod
    def read_bytes(path: str | Path) -> bytes:
        try:
            return Path(path).read_bytes()
        except OSError as e:
            raise ResourceError("read", path, e) from e

    @staticmethod
    def read_text(path: str | Path) -> str:
        try:
            return Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise ResourceError("read", path, e) from e

    @staticmethod
    def safe_write(path: str | Path, data: bytes) -> Path:
        """
        Atomic write:
            1) write the tmp file
            2) rename -> final file
        """
        path = Path(path)
        FileSystem.ensure_dir(path.parent)

        tmp_path = path.with_name(path.name + ".tmp")

        try:
            with open(tmp_path, "wb") as f:
                f.write(data)
            tmp_path.replace(path)
        except OSError as e:
            raise ResourceError("write", path, e) from e

        logs.debug(f"[FS] atomic write done: {path} ({len(data)} bytes)")
        return path

    @staticmethod
    def copy(source: str | Path, destination: str | Path, compress: bool = False) -> Path:
        """
        Copy a file, streaming it through gzip when `compress` is set.
        """
        source = Path(source)
        destination = Path(destination)
        FileSystem.ensure_dir(destination.parent)

        try:
            if compress:
                with open(source, "rb") as src, gzip.open(destination, "wb") as dst:
                    shutil.copyfileobj(src, dst)
            else:
                shutil.copyfile(source, destination)
        except OSError as e:
            raise ResourceError("copy", source, e) from e

        logs.debug(f"[FS] copied {source} -> {destination} (gzip={compress})")
        return destination

    @staticmethod
    def move(source: str | Path, destination: str | Path) -> Path:
        """
        Rename within one filesystem, replacing `destination`.
        """
        source = Path(source)
        destination = Path(destination)
        try:
            source.replace(destination)
        except OSError as e:
            raise ResourceError("move", source, e) from e

        logs.debug(f"[FS] moved {source} -> {destination}")
        return destination

    @staticmethod
    def remove(path: str | Path | None) -> None:
        if path is None:
            return

        p = Path(path)

        if not p.exists():
            logs.debug(f"[FS] nothing to remove: {p}")
            return

        try:
            p.unlink()
        except OSError as e:
            raise ResourceError("delete", p, e) from e
        logs.debug(f"[FS] removed: {p}")
