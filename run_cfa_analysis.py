#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
CFA 모델 비교 분석 실행 스크립트

14문항 설문 척도에 대해 다음 비교를 수행합니다:
- model_variants: 단일요인 / 단일요인+잔차공분산 / 2요인 / 2차요인 (전체 표본)
- sex: 6문항 2요인 모델, 남성 vs 여성
- age: 6문항 2요인 모델, 연령 기준 이하 vs 초과

사용 예:
    python run_cfa_analysis.py --input data/survey.csv
    python run_cfa_analysis.py --simulate 400 --no-diagrams

Author: Survey Scale Research Team
Date: 2026-10-19
"""

import argparse
import logging
import sys
from datetime import datetime

import matplotlib
matplotlib.use('Agg')

from scale_cfa import (CFAAnalysisConfig, CFAPipeline, CFAResultsExporter, DataLoadError,
                       render_comparison_table, setup_logging, simulate_survey_table)
from scale_cfa.semopy_native_visualizer import create_diagrams
from scale_cfa.visualizer import plot_comparison_tables

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='설문 척도 CFA 모델 비교 분석')
    parser.add_argument('--input', help='응답 데이터 CSV 경로')
    parser.add_argument('--config', help='JSON 설정 파일 경로')
    parser.add_argument('--output-dir', help='결과 저장 디렉토리')
    parser.add_argument('--seed', type=int, help='난수 시드')
    parser.add_argument('--age-threshold', type=float, help='연령 분할 기준 (이하/초과)')
    parser.add_argument('--no-diagrams', action='store_true', help='경로 다이어그램 생성 안 함')
    parser.add_argument('--no-plots', action='store_true', help='적합도 비교 그래프 생성 안 함')
    parser.add_argument('--simulate', type=int, metavar='N',
                        help='입력 파일 대신 N명의 모의 응답으로 실행')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help='로그 레벨')
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CFAAnalysisConfig:
    """명령행 인자와 설정 파일로 분석 설정 구성 (명령행 인자 우선)"""
    overrides = {
        'input_path': args.input,
        'output_dir': args.output_dir,
        'seed': args.seed,
        'age_threshold': args.age_threshold,
    }
    if args.no_diagrams:
        overrides['create_diagrams'] = False
    if args.no_plots:
        overrides['create_plots'] = False

    if args.config:
        return CFAAnalysisConfig.from_json(args.config, **overrides)
    return CFAAnalysisConfig(**{k: v for k, v in overrides.items() if v is not None})


def print_results(result, decimals: int) -> None:
    print("\n" + "=" * 60)
    print("CFA 모델 비교 결과")
    print("=" * 60)

    print("\n📊 집단 크기:")
    for name, size in result.cohort_sizes.items():
        print(f"   {name}: {size}")

    for name, table in result.tables.items():
        print()
        print(render_comparison_table(f"Comparison: {name}", table, decimals))

    if result.failures:
        print("\n⚠️ 실패한 분기:")
        for failure in result.failures:
            print(f"   [{failure.comparison}] {failure.variant} / {failure.cohort}: "
                  f"{failure.error_type}")


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    start_time = datetime.now()
    config = build_config(args)

    table = None
    if args.simulate:
        print(f"🧪 모의 응답 {args.simulate}명으로 실행합니다.")
        table = simulate_survey_table(args.simulate, n_items=config.n_items, seed=config.seed)

    pipeline = CFAPipeline(config)
    try:
        result = pipeline.run(table)
    except DataLoadError as e:
        logger.error(f"데이터 로딩 실패: {e}")
        print(f"❌ 데이터 로딩 실패: {e}")
        return 1

    print_results(result, config.decimal_places)

    exporter = CFAResultsExporter(config.output_dir, config.decimal_places)
    saved_files = exporter.export_comprehensive_results(result, config.to_dict())
    print(f"\n💾 결과 파일 {len(saved_files)}개 저장: {config.output_dir}")

    if config.create_diagrams and result.fitted:
        diagrams = create_diagrams(result.fitted, config.output_dir / 'diagrams')
        print(f"🎨 경로 다이어그램 {len(diagrams)}개 생성")

    if config.create_plots and result.tables:
        plots = plot_comparison_tables(result.tables, config.output_dir / 'plots')
        print(f"📈 비교 그래프 {len(plots)}개 생성")

    duration = datetime.now() - start_time
    print(f"\n✅ 분석 완료 (소요 시간: {duration.total_seconds():.1f}초)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
