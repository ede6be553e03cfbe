from dataclasses import dataclass, field

from .comparator import ComparisonConfig


@dataclass
class ValidatorConfig:
    data_dir: str = "data/appearance_check"
    comparison: ComparisonConfig = field(default_factory=ComparisonConfig)
    save_regenerated: bool = True
