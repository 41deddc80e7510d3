"""
공용 테스트 픽스처

Author: Survey Scale Research Team
Date: 2026-10-19
"""

import pandas as pd
import pytest

from scale_cfa.config import CFAAnalysisConfig
from scale_cfa.simulation import simulate_factor_responses, simulate_survey_table


@pytest.fixture
def config(tmp_path):
    """다이어그램/그래프를 끈 기본 설정"""
    return CFAAnalysisConfig(output_dir=tmp_path / "results",
                             create_diagrams=False, create_plots=False)


@pytest.fixture
def one_factor_data():
    """문항 평균 3, 부하량 0.8, 요인분산 1, 오차 SD 0.6인 50행 14문항 자료 (시드 고정)"""
    return simulate_factor_responses(50, [0.8] * 14, factor_variance=1.0,
                                     noise_sd=0.6, intercept=3.0, seed=20240521)


@pytest.fixture
def survey_table():
    """인구통계 변수를 포함한 400명 모의 응답 테이블"""
    return simulate_survey_table(400, seed=7)


@pytest.fixture
def write_csv(tmp_path):
    """DataFrame 또는 원문 텍스트를 CSV 파일로 저장하는 헬퍼"""
    def _write(content, name="survey.csv"):
        path = tmp_path / name
        if isinstance(content, pd.DataFrame):
            content.to_csv(path, index=False)
        else:
            path.write_text(content, encoding="utf-8")
        return path
    return _write
