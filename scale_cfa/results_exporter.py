"""
CFA Results Exporter Module

이 모듈은 CFA 비교 분석 결과를 파일로 저장하는 기능을 제공합니다.
- 비교 테이블 CSV
- 모델별 요인부하량 / 적합도 지수 CSV
- 텍스트 요약 보고서
- JSON 메타데이터
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import pandas as pd

from .comparison_analyzer import interpret_fit_value, render_comparison_table
from .config import NAMING_CONFIG

logger = logging.getLogger(__name__)


def _safe_name(label: str) -> str:
    return label.replace('@', '_at_').replace('/', '_').replace(' ', '_')


class CFAResultsExporter:
    """CFA 분석 결과를 내보내는 클래스"""

    def __init__(self, output_dir: Union[str, Path] = None,
                 decimal_places: int = NAMING_CONFIG["decimal_places"]):
        """
        Results Exporter 초기화

        Args:
            output_dir (Union[str, Path]): 결과 저장 디렉토리
            decimal_places (int): 출력 소수점 자릿수
        """
        if output_dir is None:
            self.output_dir = Path("cfa_results")
        else:
            self.output_dir = Path(output_dir)
        self.decimal_places = decimal_places
        self.encoding = NAMING_CONFIG["file_encoding"]

        self.output_dir.mkdir(parents=True, exist_ok=True)

    def export_comparison_table(self, name: str, table: pd.DataFrame) -> Path:
        """
        비교 테이블을 CSV 파일로 내보내기

        Args:
            name (str): 비교 이름 (model_variants, sex, age ...)
            table (pd.DataFrame): 비교 테이블

        Returns:
            Path: 저장된 파일 경로
        """
        file_path = self.output_dir / f"comparison_{_safe_name(name)}.csv"
        table.round(self.decimal_places).to_csv(file_path, encoding=self.encoding)
        logger.info(f"비교 테이블 저장 완료: {file_path}")
        return file_path

    def export_factor_loadings(self, fitted) -> Path:
        """모델별 요인부하량 CSV 저장"""
        loadings = fitted.factor_loadings()
        if loadings.empty:
            raise ValueError(f"{fitted.label}: 요인부하량 데이터가 없습니다")

        loadings['Model'] = fitted.variant
        loadings['Cohort'] = fitted.cohort
        loadings['Sample_Size'] = fitted.n_observations

        file_path = self.output_dir / f"loadings_{_safe_name(fitted.label)}.csv"
        loadings.round(self.decimal_places).to_csv(file_path, index=False, encoding=self.encoding)
        logger.info(f"요인부하량 저장 완료: {file_path}")
        return file_path

    def export_fit_indices(self, fitted) -> Path:
        """모델별 전체 적합도 지수 CSV 저장 (해석 포함)"""
        fit_df = pd.DataFrame([
            {
                'Fit_Index': name,
                'Value': round(value, self.decimal_places) if pd.notna(value) else value,
                'Interpretation': interpret_fit_value(name, value),
            }
            for name, value in fitted.fit_statistics.items()
        ])
        fit_df['Model'] = fitted.variant
        fit_df['Cohort'] = fitted.cohort

        file_path = self.output_dir / f"fit_indices_{_safe_name(fitted.label)}.csv"
        fit_df.to_csv(file_path, index=False, encoding=self.encoding)
        logger.info(f"적합도 지수 저장 완료: {file_path}")
        return file_path

    def export_summary_report(self, result, filename: str = "cfa_summary.txt") -> Path:
        """
        요약 보고서를 텍스트 파일로 내보내기

        Args:
            result (PipelineResult): 파이프라인 결과
            filename (str): 파일명

        Returns:
            Path: 저장된 파일 경로
        """
        file_path = self.output_dir / filename

        report_lines = []
        report_lines.append("=" * 60)
        report_lines.append("CFA MODEL COMPARISON SUMMARY")
        report_lines.append("=" * 60)
        report_lines.append(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        report_lines.append("")

        report_lines.append("COHORTS")
        report_lines.append("-" * 30)
        for name, size in result.cohort_sizes.items():
            report_lines.append(f"{name}: {size}")
        report_lines.append("")

        for name, table in result.tables.items():
            report_lines.append(render_comparison_table(f"Comparison: {name}", table,
                                                        self.decimal_places))
            report_lines.append("")

        if result.reliability:
            report_lines.append("RELIABILITY")
            report_lines.append("-" * 30)
            for label, table in result.reliability.items():
                report_lines.append(f"[{label}]")
                report_lines.append(table.round(self.decimal_places).to_string(index=False))
            report_lines.append("")

        if result.failures:
            report_lines.append("FAILED BRANCHES")
            report_lines.append("-" * 30)
            for failure in result.failures:
                report_lines.append(f"{failure.comparison} / {failure.variant} / {failure.cohort}: "
                                    f"{failure.error_type} - {failure.message}")
            report_lines.append("")

        with open(file_path, 'w', encoding='utf-8') as f:
            f.write('\n'.join(report_lines))

        logger.info(f"요약 보고서 저장 완료: {file_path}")
        return file_path

    def export_metadata(self, result, config: Optional[Dict[str, Any]] = None,
                        filename: str = "cfa_metadata.json") -> Path:
        """분석 메타데이터를 JSON 파일로 내보내기"""
        file_path = self.output_dir / filename

        def _clean(value):
            return None if isinstance(value, float) and np.isnan(value) else value

        metadata = {
            'analysis_timestamp': datetime.now().isoformat(),
            'config': config or {},
            'cohort_sizes': result.cohort_sizes,
            'models': {
                label: {
                    'variant': fitted.variant,
                    'cohort': fitted.cohort,
                    'n_observations': fitted.n_observations,
                    'n_parameters': fitted.n_parameters,
                    'converged': fitted.converged,
                    'fit_statistics': {k: _clean(v) for k, v in fitted.fit_statistics.items()},
                }
                for label, fitted in result.fitted.items()
            },
            'failures': [failure.to_dict() for failure in result.failures],
        }

        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(metadata, f, indent=2, ensure_ascii=False, default=str)

        logger.info(f"메타데이터 저장 완료: {file_path}")
        return file_path

    def export_comprehensive_results(self, result,
                                     config: Optional[Dict[str, Any]] = None) -> Dict[str, Path]:
        """
        모든 결과를 종합적으로 내보내기

        Args:
            result (PipelineResult): 파이프라인 결과
            config (Optional[Dict[str, Any]]): 메타데이터에 기록할 설정

        Returns:
            Dict[str, Path]: 저장된 파일들의 경로
        """
        saved_files = {}

        for name, table in result.tables.items():
            saved_files[f"comparison_{name}"] = self.export_comparison_table(name, table)

        for label, fitted in result.fitted.items():
            saved_files[f"loadings_{label}"] = self.export_factor_loadings(fitted)
            saved_files[f"fit_indices_{label}"] = self.export_fit_indices(fitted)

        saved_files['summary_report'] = self.export_summary_report(result)
        saved_files['metadata'] = self.export_metadata(result, config)

        logger.info(f"종합 결과 저장 완료: {len(saved_files)}개 파일")
        return saved_files
