"""
semopy 내장 가시화 모듈

이 모듈은 semopy의 semplot을 활용하여 적합된 CFA 모델의
경로 다이어그램을 생성합니다. Graphviz 실행 파일이 없으면
추정값을 담은 DOT 파일만 생성합니다.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

import graphviz
import pandas as pd
from semopy import semplot

logger = logging.getLogger(__name__)


class PathDiagramGenerator:
    """적합된 모델의 경로 다이어그램 생성 클래스"""

    def __init__(self, output_dir: Union[str, Path] = "cfa_results/diagrams",
                 std_ests: bool = True, engine: str = 'dot'):
        """
        Path Diagram Generator 초기화

        Args:
            output_dir (Union[str, Path]): 다이어그램 저장 디렉토리
            std_ests (bool): 표준화 추정값 표시 여부
            engine (str): graphviz 엔진
        """
        self.output_dir = Path(output_dir)
        self.std_ests = std_ests
        self.engine = engine
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def create_sem_diagram(self, fitted, filename: Optional[str] = None) -> Path:
        """
        semplot으로 SEM 다이어그램 생성

        Args:
            fitted (FittedModel): 적합된 모델
            filename (Optional[str]): 파일명 (확장자 제외, 기본값: 모델 라벨)

        Returns:
            Path: 생성된 파일 경로 (PNG 또는 DOT)
        """
        base_name = filename or fitted.label.replace('@', '_at_')
        png_path = self.output_dir / f"{base_name}.png"

        try:
            semplot(fitted.model, str(png_path), plot_covs=True,
                    std_ests=self.std_ests, engine=self.engine)
            logger.info(f"SEM 다이어그램 생성 완료: {png_path}")
            return png_path
        except graphviz.ExecutableNotFound:
            logger.warning("Graphviz 실행 파일을 찾을 수 없습니다. DOT 파일만 생성합니다.")
            # 렌더링 전에 저장된 확장자 없는 소스 파일 제거
            png_path.with_suffix('').unlink(missing_ok=True)
            return self.create_manual_dot(fitted, base_name)

    def create_manual_dot(self, fitted, base_name: str) -> Path:
        """
        추정값으로 DOT 파일 직접 생성 (Graphviz 실행 파일 불필요)

        Args:
            fitted (FittedModel): 적합된 모델
            base_name (str): 파일명 (확장자 제외)

        Returns:
            Path: DOT 파일 경로
        """
        dot = self.build_digraph(fitted)
        dot_path = self.output_dir / f"{base_name}.dot"
        dot.save(str(dot_path))
        logger.info(f"수동 DOT 파일 생성 완료: {dot_path}")
        return dot_path

    def build_digraph(self, fitted) -> graphviz.Digraph:
        """적합 결과로부터 graphviz 그래프 구성"""
        estimates = fitted.parameter_estimates()
        value_col = 'Est. Std' if self.std_ests and 'Est. Std' in estimates.columns else 'Estimate'

        spec = fitted.spec
        latents = set(spec.factor_names)
        if spec.second_order is not None:
            latents.add(spec.second_order.name)

        dot = graphviz.Digraph(name=fitted.label, engine=self.engine)
        dot.attr(rankdir='LR')

        for latent in sorted(latents):
            dot.node(latent, latent, shape='circle')
        for item in spec.observed_variables():
            dot.node(item, item, shape='box')

        for _, row in estimates.iterrows():
            value = pd.to_numeric(row[value_col], errors='coerce')
            label = f"{value:.2f}" if pd.notna(value) else ""
            if row['op'] == '~':
                # semopy는 item ~ factor 형태로 부하량을 표현
                dot.edge(row['rval'], row['lval'], label=label)
            elif row['op'] == '~~' and row['lval'] != row['rval']:
                dot.edge(row['lval'], row['rval'], label=label, dir='both', style='dashed')

        return dot


def create_diagrams(fitted_models: Dict[str, object],
                    output_dir: Union[str, Path]) -> Dict[str, Path]:
    """
    여러 적합 모델의 다이어그램을 생성하는 편의 함수

    Args:
        fitted_models (Dict[str, FittedModel]): {라벨: 적합 모델}
        output_dir (Union[str, Path]): 출력 디렉토리

    Returns:
        Dict[str, Path]: {라벨: 파일 경로}
    """
    generator = PathDiagramGenerator(output_dir)
    return {label: generator.create_sem_diagram(fitted) for label, fitted in fitted_models.items()}
