"""
적합도 지수 비교 시각화 모듈

비교 테이블을 matplotlib/seaborn으로 시각화합니다.
- 지수별 막대 그래프 (기준선 포함)
- 비교 테이블 히트맵
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from .config import FIT_INDEX_THRESHOLDS

logger = logging.getLogger(__name__)

plt.rcParams['axes.unicode_minus'] = False


class FitComparisonPlotter:
    """적합도 지수 비교 시각화 전담 클래스"""

    def __init__(self, figsize: Tuple[int, int] = (10, 6), style: str = 'whitegrid'):
        """
        Fit Comparison Plotter 초기화

        Args:
            figsize (Tuple[int, int]): 그래프 크기
            style (str): seaborn 스타일
        """
        self.figsize = figsize
        self.style = style

    def plot_index_bars(self, table: pd.DataFrame, title: str,
                        statistics: Optional[List[str]] = None,
                        save_path: Optional[Union[str, Path]] = None) -> Optional[plt.Figure]:
        """
        기준값이 있는 지수(CFI, RMSEA, SRMR 등)를 라벨별 막대로 비교

        Args:
            table (pd.DataFrame): 비교 테이블 (행=지수, 열=라벨)
            title (str): 그래프 제목
            statistics (Optional[List[str]]): 표시할 지수 (기본값: 기준값이 있는 지수)
            save_path (Optional[Union[str, Path]]): 저장 경로

        Returns:
            Optional[plt.Figure]: 생성된 그래프
        """
        statistics = statistics or [s for s in table.index if s in FIT_INDEX_THRESHOLDS]
        if not statistics:
            logger.warning("시각화할 적합도 지수가 없습니다.")
            return None

        long_df = (table.loc[statistics].astype(float)
                   .reset_index()
                   .melt(id_vars=table.index.name or 'index', var_name='Label', value_name='Value'))
        long_df = long_df.rename(columns={table.index.name or 'index': 'Statistic'})

        sns.set_style(self.style)
        fig, ax = plt.subplots(figsize=self.figsize)
        sns.barplot(data=long_df, x='Statistic', y='Value', hue='Label', ax=ax)

        for statistic in statistics:
            good = FIT_INDEX_THRESHOLDS[statistic]['good']
            position = statistics.index(statistic)
            ax.hlines(good, position - 0.4, position + 0.4, colors='red', linestyles='--', alpha=0.6)

        ax.set_title(title, fontsize=14, fontweight='bold')
        ax.set_ylabel('Index Value')
        ax.set_ylim(0, max(1.05, long_df['Value'].max() * 1.1))
        plt.tight_layout()

        if save_path:
            fig.savefig(save_path, dpi=300, bbox_inches='tight')
            logger.info(f"적합도 비교 그래프 저장: {save_path}")

        return fig

    def plot_heatmap(self, table: pd.DataFrame, title: str,
                     save_path: Optional[Union[str, Path]] = None,
                     decimals: int = 4) -> plt.Figure:
        """비교 테이블 히트맵 (지수별로 열 방향 정규화하여 색상 표시)"""
        values = table.astype(float)
        spread = values.max(axis=1) - values.min(axis=1)
        normalized = values.sub(values.min(axis=1), axis=0).div(spread.where(spread > 0, 1), axis=0)

        fig, ax = plt.subplots(figsize=self.figsize)
        sns.heatmap(normalized, annot=values.round(decimals), fmt='', cmap='RdYlGn',
                    cbar=False, linewidths=0.5, ax=ax)
        ax.set_title(title, fontsize=14, fontweight='bold')
        plt.tight_layout()

        if save_path:
            fig.savefig(save_path, dpi=300, bbox_inches='tight')
            logger.info(f"비교 히트맵 저장: {save_path}")

        return fig


def plot_comparison_tables(tables: dict, output_dir: Union[str, Path]) -> List[Path]:
    """
    모든 비교 테이블의 그래프를 저장하는 편의 함수

    Args:
        tables (dict): {비교 이름: 비교 테이블}
        output_dir (Union[str, Path]): 출력 디렉토리

    Returns:
        List[Path]: 저장된 파일 경로 목록
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    plotter = FitComparisonPlotter()

    saved = []
    for name, table in tables.items():
        bar_path = output_dir / f"fit_comparison_{name}.png"
        fig = plotter.plot_index_bars(table, f"Fit Indices: {name}", save_path=bar_path)
        if fig is not None:
            plt.close(fig)
            saved.append(bar_path)

        heatmap_path = output_dir / f"fit_heatmap_{name}.png"
        plt.close(plotter.plot_heatmap(table, f"Fit Comparison: {name}", save_path=heatmap_path))
        saved.append(heatmap_path)

    return saved
