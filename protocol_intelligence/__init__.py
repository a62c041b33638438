#!/usr/bin/env python3
"""
Protocol Intelligence

This package scores clinical-trial protocol text for complexity, enrollment
feasibility and visit burden, benchmarks it against a corpus of registry
protocols, and collects that corpus from ClinicalTrials.gov.
"""

from .analyzer import ProtocolAnalyzer, analyze_protocol
from .api import ClinicalTrialsAPI, RateLimiter, test_api_connection
from .benchmarking import BenchmarkingService, benchmark
from .complexity import ComplexityScorer, score_complexity
from .corpus import ReferenceCorpus
from .corpus_collector import CorpusCollector, analyze_corpus, build_protocol_record, deduplicate
from .enrollment import EnrollmentPredictor, predict_enrollment
from .extraction import TextFeatureExtractor, detect_study_phase, extract_features
from .models import ProtocolAnalysis, ProtocolFeatures, ProtocolRecord
from .recommendations import generate_quick_fixes, generate_recommendations
from .reports import generate_analysis_report, generate_corpus_summary
from .visit_burden import VisitBurdenCalculator, calculate_visit_burden

__all__ = [
    'BenchmarkingService',
    'ClinicalTrialsAPI',
    'ComplexityScorer',
    'CorpusCollector',
    'EnrollmentPredictor',
    'ProtocolAnalysis',
    'ProtocolAnalyzer',
    'ProtocolFeatures',
    'ProtocolRecord',
    'RateLimiter',
    'ReferenceCorpus',
    'TextFeatureExtractor',
    'VisitBurdenCalculator',
    'analyze_corpus',
    'analyze_protocol',
    'benchmark',
    'build_protocol_record',
    'calculate_visit_burden',
    'deduplicate',
    'detect_study_phase',
    'extract_features',
    'generate_analysis_report',
    'generate_corpus_summary',
    'generate_quick_fixes',
    'generate_recommendations',
    'predict_enrollment',
    'score_complexity',
    'test_api_connection',
]
