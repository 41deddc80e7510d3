"""
Survey Data Loader Module

이 모듈은 설문 응답 CSV 파일을 불러오고, 분석용 집단(cohort)을 구성하는
기능을 제공합니다.
- 응답 테이블 로딩 및 검증
- 범주형 변수 재코딩 (성별)
- 분석 컬럼 선택
- 전체/성별/연령 집단 생성
"""

import logging
from collections import OrderedDict
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

import numpy as np
import pandas as pd

from .config import CFAAnalysisConfig, get_default_config
from .exceptions import DataLoadError

logger = logging.getLogger(__name__)

MISSING_CATEGORY = np.nan
MISSING_LABEL = 'other/missing'


class SurveyDataLoader:
    """설문 응답 CSV 파일을 로딩하는 클래스"""

    def __init__(self, config: Optional[CFAAnalysisConfig] = None):
        """
        Survey Data Loader 초기화

        Args:
            config (Optional[CFAAnalysisConfig]): 분석 설정
        """
        self.config = config if config is not None else get_default_config()

    def load(self, path: Optional[Union[str, Path]] = None) -> pd.DataFrame:
        """
        응답 테이블 로딩

        Args:
            path (Optional[Union[str, Path]]): CSV 파일 경로 (기본값: 설정의 input_path)

        Returns:
            pd.DataFrame: 응답자별 1행의 응답 테이블
        """
        path = path if path is not None else self.config.input_path
        if path is None:
            raise DataLoadError("입력 파일 경로가 설정되지 않았습니다")

        path = Path(path)
        if not path.exists():
            raise DataLoadError("데이터 파일을 찾을 수 없습니다", str(path))
        if not path.is_file():
            raise DataLoadError("경로가 파일이 아닙니다", str(path))

        try:
            df = pd.read_csv(path, encoding='utf-8-sig')
        except pd.errors.EmptyDataError as e:
            raise DataLoadError("데이터 파일이 비어있습니다", str(path)) from e
        except pd.errors.ParserError as e:
            raise DataLoadError(f"CSV 형식 오류 (컬럼 수 불일치): {e}", str(path)) from e
        except (OSError, UnicodeDecodeError) as e:
            raise DataLoadError(f"데이터 파일을 읽을 수 없습니다: {e}", str(path)) from e

        logger.info(f"설문 데이터 로딩 완료: {df.shape}")
        return self._validate_response_table(df, path)

    def _validate_response_table(self, df: pd.DataFrame, path: Path) -> pd.DataFrame:
        """
        응답 테이블 유효성 검증

        Args:
            df (pd.DataFrame): 검증할 데이터프레임
            path (Path): 원본 파일 경로 (오류 메시지용)

        Returns:
            pd.DataFrame: 검증된 데이터프레임
        """
        if df.empty:
            raise DataLoadError("응답 데이터가 없습니다", str(path))

        missing_columns = [col for col in self.config.required_columns if col not in df.columns]
        if missing_columns:
            raise DataLoadError(f"필수 컬럼이 없습니다: {missing_columns}", str(path))

        numeric_columns = [self.config.age_column, self.config.sex_column] + self.config.item_columns
        for col in numeric_columns:
            converted = pd.to_numeric(df[col], errors='coerce')
            invalid = converted.isna() & df[col].notna()
            if invalid.any():
                examples = df.loc[invalid, col].astype(str).unique()[:3].tolist()
                raise DataLoadError(f"'{col}' 컬럼에 숫자가 아닌 값이 있습니다: {examples}", str(path))
            df[col] = converted

        missing_count = int(df[self.config.item_columns].isnull().sum().sum())
        if missing_count > 0:
            logger.info(f"문항 결측치 {missing_count}개 발견 (FIML로 처리)")

        return df


def recode_category(table: pd.DataFrame, source: str, target: str,
                    mapping: Mapping[int, str]) -> pd.DataFrame:
    """
    범주형 코드를 라벨로 재코딩한 새 컬럼을 추가

    매핑에 없는 코드(기타/결측)는 결측 표시(NaN)가 됩니다.
    원본 테이블과 원본 컬럼은 변경하지 않습니다.

    Args:
        table (pd.DataFrame): 응답 테이블
        source (str): 원본 코드 컬럼
        target (str): 생성할 라벨 컬럼
        mapping (Mapping[int, str]): 코드 → 라벨

    Returns:
        pd.DataFrame: 라벨 컬럼이 추가된 복사본
    """
    recoded = table.copy()
    labels = table[source].map(dict(mapping))
    recoded[target] = labels.where(labels.notna(), MISSING_CATEGORY)
    return recoded


def project_columns(table: pd.DataFrame, columns: List[str]) -> pd.DataFrame:
    """지정한 컬럼만 선택한 복사본 반환"""
    missing = [col for col in columns if col not in table.columns]
    if missing:
        raise KeyError(f"선택할 컬럼이 없습니다: {missing}")
    return table.loc[:, list(columns)].copy()


class CohortBuilder:
    """분석 집단(전체, 성별, 연령)을 구성하는 클래스"""

    def __init__(self, config: Optional[CFAAnalysisConfig] = None):
        self.config = config if config is not None else get_default_config()

    def recode(self, table: pd.DataFrame) -> pd.DataFrame:
        """성별 코드를 라벨로 재코딩"""
        return recode_category(table, self.config.sex_column,
                               self.config.sex_group_column, self.config.sex_mapping)

    def category_counts(self, table: pd.DataFrame) -> Dict[str, int]:
        """
        재코딩 라벨별 응답자 수 (결측 포함)

        Args:
            table (pd.DataFrame): 응답 테이블

        Returns:
            Dict[str, int]: {라벨: 응답자 수}
        """
        groups = self.recode(table)[self.config.sex_group_column]
        counts = {label: int((groups == label).sum()) for label in self.config.sex_mapping.values()}
        counts[MISSING_LABEL] = int(groups.isna().sum())
        return counts

    def build(self, table: pd.DataFrame) -> 'OrderedDict[str, pd.DataFrame]':
        """
        분석 집단 생성

        Args:
            table (pd.DataFrame): 응답 테이블

        Returns:
            OrderedDict[str, pd.DataFrame]: {집단명: 문항 컬럼만 선택된 데이터}
        """
        items = self.config.item_columns
        recoded = self.recode(table)
        group_col = self.config.sex_group_column
        age_col = self.config.age_column

        cohorts = OrderedDict()
        cohorts['full'] = project_columns(recoded, items)

        for label in self.config.sex_mapping.values():
            cohorts[label] = project_columns(recoded[recoded[group_col] == label], items)

        age = recoded[age_col]
        labels = self.config.age_labels
        cohorts[labels['lower']] = project_columns(recoded[age <= self.config.age_threshold], items)
        cohorts[labels['upper']] = project_columns(recoded[age > self.config.age_threshold], items)

        counts = self.category_counts(table)
        if counts[MISSING_LABEL]:
            logger.info(f"성별 재코딩 대상이 아닌 응답자 {counts[MISSING_LABEL]}명은 성별 집단에서 제외")
        missing_age = int(age.isna().sum())
        if missing_age:
            logger.info(f"연령 결측 응답자 {missing_age}명은 연령 집단에서 제외")

        for name, cohort in cohorts.items():
            logger.info(f"집단 '{name}': {len(cohort)}명")

        return cohorts


def load_survey_data(path: Union[str, Path],
                     config: Optional[CFAAnalysisConfig] = None) -> pd.DataFrame:
    """
    설문 데이터를 로딩하는 편의 함수

    Args:
        path (Union[str, Path]): CSV 파일 경로
        config (Optional[CFAAnalysisConfig]): 분석 설정

    Returns:
        pd.DataFrame: 응답 테이블
    """
    return SurveyDataLoader(config).load(path)


def build_cohorts(table: pd.DataFrame,
                  config: Optional[CFAAnalysisConfig] = None) -> 'OrderedDict[str, pd.DataFrame]':
    """분석 집단을 생성하는 편의 함수"""
    return CohortBuilder(config).build(table)
