from .config import ValidatorConfig
from .models import ValidationReport
from .storage import ReportPaths, ReportStorage
from .validator import AppearanceValidator


class ValidationService:
    def __init__(self, config: ValidatorConfig | None = None):
        self.config = config or ValidatorConfig()
        self.validator = AppearanceValidator(config=self.config.comparison)
        self.storage = ReportStorage(self.config.data_dir)

    def validate(self, pdf_path: str) -> ValidationReport:
        return self.validator.validate_document(pdf_path)

    def validate_and_save(self, pdf_path: str) -> tuple[ValidationReport, ReportPaths]:
        paths = self.storage.build_paths(pdf_path)
        regenerated_path = paths.regenerated_file if self.config.save_regenerated else None
        report = self.validator.validate_document(pdf_path, regenerated_path=regenerated_path)
        self.storage.save(report, paths)
        return report, paths
