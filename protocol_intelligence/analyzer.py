#!/usr/bin/env python3
"""
Protocol Analyzer

Runs the whole engine over one protocol text: feature extraction, complexity,
enrollment feasibility, visit burden, benchmarking and recommendations.
"""

import logging
from typing import Dict, Optional

from .benchmarking import BenchmarkingService, default_corpus
from .complexity import ComplexityScorer
from .corpus import MIN_COHORT_SIZE, ReferenceCorpus
from .enrollment import EnrollmentPredictor
from .extraction import TextFeatureExtractor, cohort_phase, detect_study_phase, normalize_phase
from .models import (
    ComplexityScore,
    EnrollmentFeasibility,
    ProtocolAnalysis,
    ProtocolFeatures,
    VisitBurdenAnalysis,
)
from .recommendations import generate_quick_fixes, generate_recommendations
from .visit_burden import VisitBurdenCalculator

logger = logging.getLogger(__name__)


def protocol_metrics(features: ProtocolFeatures,
                     complexity: ComplexityScore,
                     enrollment: EnrollmentFeasibility,
                     burden: VisitBurdenAnalysis) -> Dict[str, float]:
    """The metrics benchmarked against the reference corpus."""
    return {
        "sample_size": features.sample_size,
        "total_visits": burden.total_visits,
        "eligibility_criteria": features.total_criteria,
        "study_duration_months": features.study_duration_months,
        "primary_endpoints": features.primary_endpoints,
        "screen_failure_rate": enrollment.screen_failure_rate,
        "complexity_score": complexity.overall,
    }


class ProtocolAnalyzer:
    """Facade over the extraction, scoring and benchmarking components."""

    def __init__(self, corpus: Optional[ReferenceCorpus] = None,
                 min_cohort_size: int = MIN_COHORT_SIZE):
        self.corpus = corpus or default_corpus()
        self.extractor = TextFeatureExtractor()
        self.complexity = ComplexityScorer()
        self.enrollment = EnrollmentPredictor()
        self.visit_burden = VisitBurdenCalculator()
        self.benchmarking = BenchmarkingService(self.corpus, min_cohort_size=min_cohort_size)

    def analyze(self, text: Optional[str], phase: Optional[str] = None,
                therapeutic_area: Optional[str] = None) -> ProtocolAnalysis:
        text = text or ""
        features = self.extractor.extract(text)
        phase = normalize_phase(phase) if phase else detect_study_phase(text)
        area = therapeutic_area or features.therapeutic_area
        logger.info(f"Analyzing protocol: {phase}, {area}, {features.word_count} words")

        reference_scores = self.corpus.cohort_sample("complexity_score", cohort_phase(phase))
        complexity = self.complexity.score(features, reference_scores)
        enrollment = self.enrollment.predict(features)
        burden = self.visit_burden.analyze(text, area)

        metrics = protocol_metrics(features, complexity, enrollment, burden)
        benchmark = self.benchmarking.benchmark(metrics, phase, area)
        recommendations = generate_recommendations(complexity, enrollment, burden, benchmark)

        logger.info(f"Complexity {complexity.overall} ({complexity.category}), "
                    f"enrollment {enrollment.estimated_months} months, "
                    f"burden {burden.overall_burden}, health {recommendations.protocol_health}")

        return ProtocolAnalysis(
            phase=phase,
            features=features,
            complexity=complexity,
            enrollment=enrollment,
            visit_burden=burden,
            benchmark=benchmark,
            recommendations=recommendations,
            quick_fixes=generate_quick_fixes(text),
        )


def analyze_protocol(text: Optional[str], phase: Optional[str] = None,
                     therapeutic_area: Optional[str] = None,
                     corpus: Optional[ReferenceCorpus] = None) -> ProtocolAnalysis:
    """Analyze one protocol text against ``corpus`` or the bundled reference corpus."""
    return ProtocolAnalyzer(corpus).analyze(text, phase, therapeutic_area)
