from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from .models import ValidationReport


@dataclass
class ReportPaths:
    document_id: str
    report_dir: Path
    report_file: Path
    regenerated_file: Path


class ReportStorage:
    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir)

    def build_paths(self, source_file: str) -> ReportPaths:
        source = Path(source_file)
        document_id = source.stem
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        report_dir = self.data_dir / document_id
        report_dir.mkdir(parents=True, exist_ok=True)
        return ReportPaths(
            document_id=document_id,
            report_dir=report_dir,
            report_file=report_dir / f"{document_id}_{timestamp}.json",
            regenerated_file=report_dir / f"{source.name}-newAP.pdf",
        )

    def save(self, report: ValidationReport, paths: ReportPaths | None = None) -> ReportPaths:
        paths = paths or self.build_paths(report.source_file)
        report.save(str(paths.report_file))
        return paths
