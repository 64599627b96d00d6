"""Diagnosis pipeline: guard -> benchmark -> KPIs -> composite score -> suggestions.

``DiagnosisEngine`` evaluates one raw survey mapping. ``run_diagnosis`` is the
batch entry point used by the ``restodiag`` console script. It reads a file
of surveys and writes a scorecard, per-record KPI and suggestion files, and
run metadata.
"""
from __future__ import annotations

import argparse
import json
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pandas as pd

from .benchmarks import Benchmark
from .cache import ResultCache
from .config import DiagnosisConfig, default_config, load_config
from .guard import guard_record
from .ingestion_utils import ensure_directory, file_sha256, load_records
from .kpi import KPISet, derive_kpis
from .logging_utils import LOGGER_NAME, end_timer, setup_logging, start_timer
from .models import Suggestion, SurveyRecord, optional_round
from .recommendations import build_rule_metrics, suggest
from .scoring.composite import CompositeScoreResult, score_composite


logger = logging.getLogger("restodiag.pipeline")


@dataclass(frozen=True)
class DiagnosisResult:
    record: SurveyRecord
    benchmark: Benchmark
    kpis: KPISet
    composite: CompositeScoreResult
    suggestions: Tuple[Suggestion, ...]
    rule_metrics: Dict[str, float]

    def scorecard_row(self) -> Dict[str, Any]:
        """Flat summary row for the batch scorecard."""
        composite = self.composite
        return {
            "store_name": self.record.store_name,
            "business_type": self.record.business_type.value,
            "score": composite.score,
            "level": composite.level.value,
            "penalty": composite.penalty,
            "net_margin": round(self.kpis.net_margin, 4),
            "cost_rate": round(self.kpis.cost_rate, 4),
            "gross_margin": round(self.kpis.gross_margin, 4),
            "break_even_revenue": optional_round(self.kpis.financial.break_even_revenue, 2),
            "payback_years": optional_round(self.kpis.financial.payback_years, 2),
            "risk_level": self.kpis.risk.risk_level,
            "competitiveness_rank": self.kpis.competitiveness.rank,
            "top_factors": ";".join(f.name for f in composite.top_factors),
            "bottom_factors": ";".join(f.name for f in composite.bottom_factors),
            "suggestion_count": len(self.suggestions),
            "top_suggestion": self.suggestions[0].title if self.suggestions else "",
            "defaulted_fields": ";".join(sorted(self.record.defaulted_fields)),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "store_name": self.record.store_name,
            "composite": self.composite.to_dict(),
            "kpis": self.kpis.as_dict(),
            "suggestions": [s.to_dict() for s in self.suggestions],
        }


class DiagnosisEngine:
    """Evaluate survey records against one configuration.

    A :class:`ResultCache` can be shared between engines; entries are keyed by
    the engine's config hash as well as the record. By default each engine
    owns its own cache.
    """

    def __init__(self, config: Optional[DiagnosisConfig] = None, cache: Optional[ResultCache] = None):
        self.config = config or default_config()
        self.cache = cache if cache is not None else ResultCache()
        self.resolver = self.config.resolver()
        self.config_hash = self.config.config_hash()

    def _compute(self, record: SurveyRecord, benchmark: Benchmark) -> Tuple[KPISet, CompositeScoreResult]:
        kpis = derive_kpis(record, benchmark, self.config)
        composite = score_composite(record, kpis, self.config.scoring)
        return kpis, composite

    def evaluate(self, raw: Optional[Mapping[str, Any]]) -> DiagnosisResult:
        record = guard_record(raw)
        benchmark = self.resolver.resolve(record.business_type)
        entry = self.cache.get_or_compute(record, lambda: self._compute(record, benchmark), namespace=self.config_hash)

        rule_metrics = build_rule_metrics(record, entry.kpis, entry.composite, benchmark)
        suggestions = suggest(entry.kpis, rule_metrics, self.config.recommendations.rules)
        logger.info(
            "Diagnosed %s: score=%d level=%s suggestions=%d",
            record.store_name or "<unnamed>",
            entry.composite.score,
            entry.composite.level.value,
            len(suggestions),
        )
        return DiagnosisResult(
            record=record,
            benchmark=benchmark,
            kpis=entry.kpis,
            composite=entry.composite,
            suggestions=tuple(suggestions),
            rule_metrics=rule_metrics,
        )


def _write_jsonl(path: Path, rows: List[Dict[str, Any]]) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        for row in rows:
            handle.write(json.dumps(row, ensure_ascii=False, default=str) + "\n")


def _write_outputs(
    results: List[DiagnosisResult],
    output_dir: Path,
    metadata: Dict[str, Any],
) -> pd.DataFrame:
    scorecard = pd.DataFrame([r.scorecard_row() for r in results])
    scorecard.to_csv(output_dir / "scorecard.csv", index=False, encoding="utf-8")

    _write_jsonl(
        output_dir / "kpis.jsonl",
        [{"store_name": r.record.store_name, **r.to_dict()} for r in results],
    )
    _write_jsonl(
        output_dir / "suggestions.jsonl",
        [
            {"store_name": r.record.store_name, "rank": rank, **s.to_dict()}
            for r in results
            for rank, s in enumerate(r.suggestions, start=1)
        ],
    )
    with open(output_dir / "metadata.json", "w", encoding="utf-8") as handle:
        json.dump(metadata, handle, indent=2, ensure_ascii=False)
    return scorecard


def run_diagnosis(
    input_path: str | Path,
    output_dir: str | Path,
    config_path: str | Path | None = None,
    log_level: Optional[str] = None,
) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """Diagnose every record in ``input_path`` and write the results to ``output_dir``."""
    config = load_config(config_path)
    output_dir = ensure_directory(output_dir)
    run_logger = setup_logging(config.model_dump(mode="json"), output_dir=output_dir, level=log_level)
    timings: Dict[str, float] = {}

    start = start_timer()
    raw_records = load_records(input_path)
    end_timer("load", start, timings, run_logger)
    run_logger.info("Loaded %d survey records from %s", len(raw_records), input_path)

    engine = DiagnosisEngine(config)
    start = start_timer()
    results = [engine.evaluate(raw) for raw in raw_records]
    end_timer("diagnose", start, timings, run_logger)

    levels = Counter(r.composite.level.value for r in results)
    metadata = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "config_hash": config.config_hash(),
        "input_hashes": {str(input_path): file_sha256(input_path)},
        "records": len(results),
        "suggestions": sum(len(r.suggestions) for r in results),
        "level_distribution": dict(levels),
        "cache": engine.cache.stats(),
        "timings": timings,
    }
    scorecard = _write_outputs(results, output_dir, metadata)
    run_logger.info("Diagnosis run complete: %d records written to %s", len(results), output_dir)
    return scorecard, metadata


def build_arg_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""

    parser = argparse.ArgumentParser(description="Restaurant monthly health diagnosis")
    parser.add_argument("--input", required=True, help="Survey records (.csv, .json or .jsonl)")
    parser.add_argument("--output", default="diagnosis_output", help="Directory for scorecard and suggestion files")
    parser.add_argument("--config", default=None, help="YAML file merged over the packaged defaults")
    parser.add_argument("--log-level", default=None, choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Override the configured log level")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point."""

    parser = build_arg_parser()
    args = parser.parse_args(argv)
    _, metadata = run_diagnosis(args.input, args.output, config_path=args.config, log_level=args.log_level)
    summary = {key: metadata[key] for key in ("records", "suggestions", "level_distribution")}
    logging.getLogger(LOGGER_NAME).info("Run summary: %s", json.dumps(summary, ensure_ascii=False))
    print(json.dumps(summary, ensure_ascii=False))


if __name__ == "__main__":
    main()
