"""
AndLib Report Generator
========================

Writes machine-readable JSON reports of rename operations so patched
libraries can be audited after the fact.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from andlib import __version__
from andlib.core.models import RenameResult


class RenameReportGenerator:
    """Generate JSON reports from :class:`RenameResult` objects."""

    def build(self, result: RenameResult) -> dict[str, Any]:
        """Return the report as a plain dictionary."""
        return {
            "report_type": "andlib_jni_rename",
            "version": __version__,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "file": result.path,
            "function_signature": result.function_signature,
            "new_name": result.new_name,
            "sections": {
                "strings": {
                    "name": result.string_section,
                    "address": result.string_section_address,
                },
                "data": {
                    "name": result.data_section,
                    "address": result.data_section_address,
                },
            },
            "prelink_address": result.prelink_address,
            "string_base_address": result.string_base_address,
            "candidates": [
                c.model_dump(mode="json")
                for c in (
                    result.name_candidates,
                    result.signature_candidates,
                    result.new_name_candidates,
                )
                if c is not None
            ],
            "new_name_address": result.new_name_address,
            "match_count": result.match_count,
            "patches": [p.model_dump(mode="json") for p in result.patches],
            "duration_seconds": round(result.duration_seconds, 4),
        }

    def generate_json(self, result: RenameResult, output_path: str | Path) -> str:
        """Write the report to *output_path*.

        Returns:
            The absolute path of the generated report.
        """
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(self.build(result), fh, indent=2)
        return str(path.resolve())
