# docfill/converter.py
from __future__ import annotations
import itertools, logging, os, subprocess, sys, time
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from .config import Settings
from .errors import ConversionUnavailableError, StorageError

logger = logging.getLogger(__name__)

# time_ns can repeat on coarse clocks, so names also carry a per-process counter
_sequence = itertools.count()

# platform -> (primary, fallback); both names ship with LibreOffice depending
# on how it was installed
COMMANDS: Dict[str, Tuple[str, str]] = {
    "win32": ("soffice", "libreoffice"),
    "darwin": ("/Applications/LibreOffice.app/Contents/MacOS/soffice", "libreoffice"),
    "linux": ("libreoffice", "soffice"),
}


def commands_for(platform: str, override: Optional[str] = None) -> Tuple[str, str]:
    primary, fallback = COMMANDS.get(platform, COMMANDS["linux"])
    return (override or primary), fallback


def build_command(binary: str, src: Path, outdir: Path, target: str = "pdf") -> List[str]:
    return [binary, "--headless", "--convert-to", target, "--outdir", str(outdir), str(src)]


class LibreOfficeConverter:
    """
    Converts rendered .docx bytes with a headless LibreOffice process.

    The input is written to a time-stamped file in the temp directory and the
    result is read back from the same directory. Both files are removed
    afterwards whether or not the conversion worked.
    """

    def __init__(self, settings: Optional[Settings] = None, platform: Optional[str] = None):
        self.settings = settings or Settings()
        self.platform = platform or sys.platform

    def _attempt(self, binary: str, src: Path, dst: Path, target: str) -> Optional[str]:
        """Run one conversion; returns None on success, else the reason it failed."""
        cmd = build_command(binary, src, dst.parent, target)
        logger.info("Running converter: %s", " ".join(cmd))
        try:
            proc = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.settings.convert_timeout,
            )
        except subprocess.TimeoutExpired:
            return f"{binary} timed out after {self.settings.convert_timeout}s"
        except OSError as e:
            return f"{binary} could not be started: {e}"
        if proc.returncode != 0:
            stderr = (proc.stderr or b"").decode("utf-8", "replace").strip()
            return f"{binary} exited with status {proc.returncode}: {stderr}"
        if not dst.exists():
            return f"{binary} finished but produced no {dst.name}"
        return None

    def convert(self, data: bytes, target: str = "pdf") -> bytes:
        tmp = Path(self.settings.tmp_dir)
        stem = f"docfill_{time.time_ns()}_{os.getpid()}_{next(_sequence)}"
        src = tmp / f"{stem}.docx"
        dst = tmp / f"{stem}.{target}"
        primary, fallback = commands_for(self.platform, self.settings.soffice)
        try:
            try:
                src.write_bytes(data)
            except OSError as e:
                raise StorageError(f"Could not write temp file {src}: {e}") from e
            reason = self._attempt(primary, src, dst, target)
            if reason is None:
                return _read(dst)
            logger.error("Conversion failed: %s", reason)

            logger.info("Trying fallback converter %s", fallback)
            fallback_reason = self._attempt(fallback, src, dst, target)
            if fallback_reason is None:
                return _read(dst)
            logger.error("Fallback conversion failed: %s", fallback_reason)
            raise ConversionUnavailableError(
                "LibreOffice conversion failed. Please ensure LibreOffice is "
                f"installed. Error: {fallback_reason}"
            )
        finally:
            cleanup(src, dst)


def cleanup(*paths: Path) -> None:
    for path in paths:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not clean up temp file %s: %s", path, e)


def _read(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise StorageError(f"Could not read converted file {path}: {e}") from e
