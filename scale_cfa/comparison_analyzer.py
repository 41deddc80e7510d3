"""
적합도 지수 비교 테이블 모듈

여러 모델(또는 집단)의 적합도 지수 보고서를 나란히 놓은 비교 테이블을 만듭니다.
- 행: 적합도 지수 (첫 번째 보고서의 순서)
- 열: 라벨 (입력 순서)
통계 계산은 하지 않고 조립과 서식만 담당합니다.
"""

import logging
from typing import Dict, List, Mapping, Sequence, Tuple, Union

import pandas as pd

from .config import FIT_INDEX_THRESHOLDS, LOWER_IS_BETTER
from .fit_indices import FitIndexReport

logger = logging.getLogger(__name__)

ReportLike = Union[FitIndexReport, Mapping[str, float]]


def _as_items(report: ReportLike) -> List[Tuple[str, float]]:
    if isinstance(report, FitIndexReport):
        return list(report.values)
    return list(report.items())


def compare_fit_reports(reports: Union[Mapping[str, ReportLike],
                                       Sequence[Tuple[str, ReportLike]]]) -> pd.DataFrame:
    """
    적합도 지수 보고서들을 비교 테이블로 조립

    Args:
        reports: {라벨: 보고서} 또는 [(라벨, 보고서), ...]

    Returns:
        pd.DataFrame: 행=지수, 열=라벨
    """
    pairs = list(reports.items()) if isinstance(reports, Mapping) else list(reports)

    if len(pairs) < 2:
        raise ValueError(f"비교하려면 보고서가 2개 이상 필요합니다 (현재 {len(pairs)}개)")

    labels = [label for label, _ in pairs]
    if len(set(labels)) != len(labels):
        raise ValueError(f"라벨이 중복됩니다: {labels}")

    statistics = [name for name, _ in _as_items(pairs[0][1])]
    columns = {}
    for label, report in pairs:
        values = dict(_as_items(report))
        if set(values) != set(statistics):
            raise ValueError(
                f"'{label}'의 적합도 지수 구성이 다릅니다: "
                f"{sorted(values)} != {sorted(statistics)}"
            )
        columns[label] = [values[name] for name in statistics]

    table = pd.DataFrame(columns, index=pd.Index(statistics, name='statistic'), columns=labels)
    return table


def format_comparison_table(table: pd.DataFrame, decimals: int = 4) -> pd.DataFrame:
    """출력용으로 반올림한 비교 테이블 (원본은 변경하지 않음)"""
    return table.astype(float).round(decimals)


def best_label_per_statistic(table: pd.DataFrame) -> Dict[str, str]:
    """
    지수별로 가장 좋은 값을 가진 라벨

    Args:
        table (pd.DataFrame): 비교 테이블

    Returns:
        Dict[str, str]: {지수: 라벨}
    """
    best = {}
    for statistic, row in table.astype(float).iterrows():
        if row.isna().all() or statistic in ('df', 'npar', 'ntotal', 'baseline.df', 'scaling.factor'):
            continue
        if statistic in LOWER_IS_BETTER:
            best[statistic] = row.idxmin()
        elif statistic.startswith('pvalue') or statistic in ('cfi', 'cfi.scaled', 'tli', 'tli.scaled', 'logl'):
            best[statistic] = row.idxmax()
    return best


def interpret_fit_value(statistic: str, value: float) -> str:
    """적합도 지수 값 해석"""
    criteria = FIT_INDEX_THRESHOLDS.get(statistic)
    if criteria is None or pd.isna(value):
        return "N/A"

    if statistic in LOWER_IS_BETTER:
        if value <= criteria['excellent']:
            return "Excellent"
        elif value <= criteria['good']:
            return "Good"
        return "Poor"

    if value >= criteria['excellent']:
        return "Excellent"
    elif value >= criteria['good']:
        return "Good"
    return "Poor"


def render_comparison_table(title: str, table: pd.DataFrame, decimals: int = 4) -> str:
    """
    사람이 읽을 수 있는 비교 테이블 문자열

    Args:
        title (str): 제목
        table (pd.DataFrame): 비교 테이블
        decimals (int): 소수점 자릿수

    Returns:
        str: 텍스트 테이블
    """
    lines = ["=" * 60, title, "=" * 60]
    with pd.option_context('display.max_columns', None, 'display.width', 120):
        lines.append(format_comparison_table(table, decimals).to_string())
    return "\n".join(lines)
