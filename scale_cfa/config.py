"""
CFA Analysis Configuration Module

이 모듈은 설문 문항 CFA 비교 분석을 위한 설정을 관리합니다.
입력 파일 경로, 시드, 추정 방법, 집단 분할 기준, 요인 구조 등을
하나의 설정 객체로 묶어 파이프라인에 전달합니다.
"""

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


# 로그 설정
LOGGING_CONFIG = {
    "log_level": "INFO",
    "log_format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    "log_file": None,
}

# 적합도 지수 해석 기준
FIT_INDEX_THRESHOLDS = {
    "cfi": {"excellent": 0.95, "good": 0.90},
    "cfi.scaled": {"excellent": 0.95, "good": 0.90},
    "tli": {"excellent": 0.95, "good": 0.90},
    "rmsea": {"excellent": 0.05, "good": 0.08},
    "rmsea.scaled": {"excellent": 0.05, "good": 0.08},
    "srmr": {"excellent": 0.05, "good": 0.08},
}

# 낮을수록 좋은 지수
LOWER_IS_BETTER = ["rmsea", "rmsea.scaled", "srmr", "chisq", "chisq.scaled", "ecvi", "aic", "bic"]

# 파일 명명 규칙
NAMING_CONFIG = {
    "file_encoding": "utf-8-sig",
    "decimal_places": 4,
}

# 보고서 기본 적합도 지수
DEFAULT_REPORT_STATISTICS = [
    "cfi", "chisq.scaled", "df", "pvalue.scaled", "rmsea.scaled", "srmr", "ecvi"
]


def _item_names(prefix: str, numbers: List[int]) -> List[str]:
    return [f"{prefix}{n}" for n in numbers]


def _default_factor_items() -> Dict[str, List[str]]:
    return {
        "F1": _item_names("item", [1, 2, 3, 8, 11, 12, 14]),
        "F2": _item_names("item", [4, 5, 6, 7, 9, 10, 13]),
    }


def _default_reduced_factor_items() -> Dict[str, List[str]]:
    return {
        "F1": _item_names("item", [1, 2, 3]),
        "F2": _item_names("item", [4, 5, 6]),
    }


@dataclass
class CFAAnalysisConfig:
    """CFA 비교 분석 설정을 저장하는 데이터클래스"""

    # 입출력 설정
    input_path: Optional[Union[str, Path]] = None
    output_dir: Union[str, Path] = "cfa_results"
    seed: int = 42

    # 추정 설정
    objective: str = 'FIML'  # Full Information Maximum Likelihood
    optimizer: str = 'SLSQP'
    robust: bool = True

    # 출력 설정
    decimal_places: int = 4
    report_statistics: List[str] = field(default_factory=lambda: list(DEFAULT_REPORT_STATISTICS))
    create_diagrams: bool = True
    create_plots: bool = True

    # 데이터 설정
    item_prefix: str = 'item'
    n_items: int = 14
    sex_column: str = 'sex'
    sex_group_column: str = 'sex_group'
    sex_mapping: Dict[int, str] = field(default_factory=lambda: {1: 'male', 2: 'female'})
    age_column: str = 'age'
    age_threshold: float = 30

    # 요인 구조 (전체 14문항, 축약 6문항)
    factor_items: Dict[str, List[str]] = field(default_factory=_default_factor_items)
    reduced_factor_items: Dict[str, List[str]] = field(default_factory=_default_reduced_factor_items)

    def __post_init__(self):
        """초기화 후 검증"""
        valid_objectives = ['FIML', 'MLW']
        if self.objective not in valid_objectives:
            raise ValueError(f"지원되지 않는 추정방법: {self.objective}")

        valid_optimizers = ['SLSQP', 'L-BFGS-B', 'trust-constr']
        if self.optimizer not in valid_optimizers:
            raise ValueError(f"지원되지 않는 최적화 방법: {self.optimizer}")

        if self.n_items < 3:
            raise ValueError(f"문항 수가 너무 적습니다: {self.n_items}")

        if self.decimal_places < 0:
            raise ValueError(f"소수점 자릿수는 0 이상이어야 합니다: {self.decimal_places}")

        # JSON에서 읽은 키는 문자열이므로 정수 코드로 변환
        self.sex_mapping = {int(code): str(label) for code, label in self.sex_mapping.items()}
        if len(set(self.sex_mapping.values())) != len(self.sex_mapping):
            raise ValueError(f"성별 재코딩 라벨이 중복됩니다: {self.sex_mapping}")

        self.output_dir = Path(self.output_dir)
        if self.input_path is not None:
            self.input_path = Path(self.input_path)

        for name, structure in (("factor_items", self.factor_items),
                                ("reduced_factor_items", self.reduced_factor_items)):
            self._validate_structure(name, structure)

    def _validate_structure(self, name: str, structure: Dict[str, List[str]]) -> None:
        if len(structure) != 2:
            raise ValueError(f"{name}은(는) 정확히 2개의 요인을 가져야 합니다: {list(structure)}")

        seen = set()
        for factor, items in structure.items():
            unknown = [item for item in items if item not in self.item_columns]
            if unknown:
                raise ValueError(f"{name}.{factor}에 알 수 없는 문항: {unknown}")
            overlap = seen.intersection(items)
            if overlap:
                raise ValueError(f"{name}의 요인 간 문항이 중복됩니다: {sorted(overlap)}")
            seen.update(items)

    @property
    def item_columns(self) -> List[str]:
        """문항 컬럼 이름 (item1 ~ item14)"""
        return [f"{self.item_prefix}{i}" for i in range(1, self.n_items + 1)]

    @property
    def required_columns(self) -> List[str]:
        return [self.age_column, self.sex_column] + self.item_columns

    @property
    def age_labels(self) -> Dict[str, str]:
        """연령 분할 집단 이름"""
        threshold = f"{self.age_threshold:g}"
        return {"lower": f"age_le_{threshold}", "upper": f"age_gt_{threshold}"}

    @classmethod
    def from_json(cls, path: Union[str, Path], **overrides) -> 'CFAAnalysisConfig':
        """
        JSON 설정 파일로부터 설정 생성

        Args:
            path (Union[str, Path]): JSON 파일 경로
            **overrides: 파일 값보다 우선하는 설정값

        Returns:
            CFAAnalysisConfig: 설정 객체
        """
        path = Path(path)
        with open(path, 'r', encoding='utf-8') as f:
            values = json.load(f)

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"알 수 없는 설정 키: {unknown}")

        values.update({k: v for k, v in overrides.items() if v is not None})
        logger.info(f"설정 파일 로드 완료: {path}")
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """JSON 직렬화 가능한 딕셔너리로 변환"""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Path):
                value = str(value)
            result[f.name] = value
        return result


def setup_logging(level: Optional[str] = None,
                  log_file: Optional[Union[str, Path]] = None) -> None:
    """
    로깅 설정

    Args:
        level (Optional[str]): 로그 레벨 (기본값: LOGGING_CONFIG)
        log_file (Optional[Union[str, Path]]): 로그 파일 경로
    """
    level = level or LOGGING_CONFIG["log_level"]
    log_file = log_file or LOGGING_CONFIG["log_file"]

    handlers = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=LOGGING_CONFIG["log_format"],
        handlers=handlers,
        force=True
    )


def get_default_config() -> CFAAnalysisConfig:
    """기본 설정을 반환하는 편의 함수"""
    return CFAAnalysisConfig()


def create_custom_config(**kwargs) -> CFAAnalysisConfig:
    """사용자 정의 설정을 생성하는 편의 함수"""
    return CFAAnalysisConfig(**kwargs)
