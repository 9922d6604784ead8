"""
Minutas — LibreOffice conversion.

Legacy and non-Word formats (.doc, .rtf, .odt, .wps, macro/template Word
variants) are converted to .docx by a headless ``soffice`` run before the
regular DOCX import reads them.
"""

from __future__ import annotations

import subprocess
import tempfile
from pathlib import Path

from minutas.errors import ConversionFailedError, ConversionTimeoutError, ImportCorruptFileError
from minutas.utils.logging import logger, step_timer


def soffice_to_docx(filename: str, content: bytes, soffice_bin: str, timeout: float) -> bytes:
    """Run ``soffice --headless --convert-to docx`` on ``content`` and return the result."""
    suffix = Path(filename).suffix.lower() or ".bin"
    with step_timer(f"LibreOffice convert {suffix} → .docx"), tempfile.TemporaryDirectory(prefix="minutas-") as tmp:
        src = Path(tmp) / f"source{suffix}"
        src.write_bytes(content)
        cmd = [soffice_bin, "--headless", "--convert-to", "docx", "--outdir", tmp, str(src)]
        try:
            proc = subprocess.run(cmd, capture_output=True, timeout=timeout, check=False)
        except subprocess.TimeoutExpired as exc:
            raise ConversionTimeoutError("LibreOffice conversion", timeout) from exc
        except FileNotFoundError as exc:
            raise ConversionFailedError("LibreOffice conversion", f"{soffice_bin} not found") from exc

        out = Path(tmp) / "source.docx"
        if proc.returncode != 0 or not out.exists():
            stderr = proc.stderr.decode("utf-8", "replace").strip()
            logger.warning("  soffice exited %d: %s", proc.returncode, stderr[:200])
            raise ImportCorruptFileError(filename, "conversion produced no document")
        data = out.read_bytes()
        logger.info("  Converted %s (%d bytes → %d bytes)", filename, len(content), len(data))
        return data
