"""
모의 설문 자료 생성 모듈

알려진 단일 요인 생성모형(고정 부하량, 고정 요인분산, 정규 오차)에서
문항 응답을 생성합니다. 테스트와 데모 실행에 사용합니다.
"""

import logging
from typing import Optional, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def simulate_factor_responses(n: int, loadings: Sequence[float],
                              factor_variance: float = 1.0,
                              noise_sd: float = 0.6,
                              intercept: float = 0.0,
                              seed: Optional[int] = 42,
                              item_prefix: str = 'item') -> pd.DataFrame:
    """
    단일 요인모형 문항 자료 생성

    Args:
        n (int): 응답자 수
        loadings (Sequence[float]): 문항별 부하량
        factor_variance (float): 요인 분산
        noise_sd (float): 오차 표준편차
        intercept (float): 문항 평균
        seed (Optional[int]): 난수 시드
        item_prefix (str): 문항 컬럼 접두어

    Returns:
        pd.DataFrame: n x len(loadings) 문항 자료
    """
    rng = np.random.default_rng(seed)
    loadings = np.asarray(loadings, dtype=float)

    factor = rng.normal(0.0, np.sqrt(factor_variance), size=n)
    noise = rng.normal(0.0, noise_sd, size=(n, len(loadings)))
    responses = intercept + np.outer(factor, loadings) + noise

    columns = [f"{item_prefix}{i}" for i in range(1, len(loadings) + 1)]
    return pd.DataFrame(responses, columns=columns)


def simulate_survey_table(n: int, n_items: int = 14, loading: float = 0.8,
                          item_mean: float = 3.0, seed: Optional[int] = 42,
                          missing_rate: float = 0.0,
                          age_range: Sequence[int] = (18, 65)) -> pd.DataFrame:
    """
    인구통계 변수를 포함한 모의 응답 테이블 생성

    성별 코드는 1, 2 외에 소수의 기타 코드(3)를 포함합니다.

    Args:
        n (int): 응답자 수
        n_items (int): 문항 수
        loading (float): 모든 문항의 부하량
        item_mean (float): 문항 평균 (리커트 척도 중앙값 부근)
        seed (Optional[int]): 난수 시드
        missing_rate (float): 문항 결측 비율
        age_range (Sequence[int]): 연령 범위 (최소, 최대)

    Returns:
        pd.DataFrame: age, sex, item1..itemN 컬럼의 테이블
    """
    rng = np.random.default_rng(seed)
    items = simulate_factor_responses(n, [loading] * n_items, intercept=item_mean, seed=seed)

    if missing_rate > 0:
        mask = rng.random(items.shape) < missing_rate
        items = items.mask(mask)

    sex = rng.choice([1, 2, 3], size=n, p=[0.47, 0.47, 0.06]).astype(float)
    age = rng.integers(age_range[0], age_range[1] + 1, size=n).astype(float)

    table = pd.DataFrame({'age': age, 'sex': sex})
    table = pd.concat([table, items], axis=1)
    logger.info(f"모의 응답 테이블 생성: {table.shape}")
    return table
