"""
File output for rendered masters.
Writes go to a temp file in the target directory and are moved into place only when complete,
so a cancelled or failed export never leaves a partial file behind.
"""
import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


class Exporter:
    @staticmethod
    def write_atomic(path: PathLike, data: bytes) -> Path:
        """Write bytes to path via temp file + os.replace."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".part", dir=str(target.parent))
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, target)
        except BaseException:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise
        logger.info("[Export] wrote %s (%d bytes)", target, len(data))
        return target

    @staticmethod
    def sidecar_path(path: PathLike) -> Path:
        target = Path(path)
        return target.with_name(f"{target.stem}.master.json")

    @staticmethod
    def write_sidecar(path: PathLike, settings: Dict[str, Any], report: Optional[Dict[str, Any]] = None,
                      warnings: Optional[list] = None) -> Path:
        """
        JSON report next to the exported file:
        { "created_at", "output", "settings", "report", "warnings" }
        """
        meta = {
            "created_at": datetime.now().isoformat(),
            "output": Path(path).name,
            "settings": settings,
            "report": report,
            "warnings": warnings or [],
        }
        data = json.dumps(meta, indent=2, default=str).encode("utf-8")
        return Exporter.write_atomic(Exporter.sidecar_path(path), data)
