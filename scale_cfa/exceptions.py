"""
CFA 분석 파이프라인 예외 정의

분석 단계별로 발생할 수 있는 오류를 구분합니다.
- DataLoadError: 입력 파일 문제 (전체 실행 중단)
- UnidentifiedModelError: 모델 식별/수렴 실패 (해당 분기만 실패)
- UnknownStatisticError: 지원되지 않는 적합도 지수 요청 (해당 추출만 실패)
"""

from typing import Optional


class CFAAnalysisError(Exception):
    """CFA 분석 관련 오류의 기본 클래스"""


class DataLoadError(CFAAnalysisError):
    """설문 데이터 파일을 읽을 수 없거나 형식이 잘못된 경우"""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        if path is not None:
            message = f"{message} (파일: {path})"
        super().__init__(message)


class ModelSpecificationError(CFAAnalysisError):
    """모델 스펙이 데이터와 맞지 않는 경우 (존재하지 않는 문항 참조 등)"""


class UnidentifiedModelError(CFAAnalysisError):
    """모델이 식별되지 않거나 최적화가 수렴하지 않은 경우"""

    def __init__(self, message: str, variant: Optional[str] = None,
                 cohort: Optional[str] = None):
        self.variant = variant
        self.cohort = cohort
        super().__init__(f"{message} [모델: {variant or '-'}, 집단: {cohort or '-'}]")


class UnknownStatisticError(CFAAnalysisError):
    """요청한 적합도 지수를 해당 추정 방법에서 제공하지 않는 경우"""

    def __init__(self, statistic: str, variant: Optional[str] = None,
                 reason: str = "지원되지 않는 적합도 지수"):
        self.statistic = statistic
        self.variant = variant
        super().__init__(f"{reason}: '{statistic}' [모델: {variant or '-'}]")
