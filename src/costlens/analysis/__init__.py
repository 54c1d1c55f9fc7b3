from .normalizer import normalize, normalize_with_report, NormalizationReport, MetricExtractor
from .consolidator import consolidate, ServiceConsolidator, ConsolidationResult, EXTENDED_RULES
from .trends import build_periods, compute_stats, trending_services, with_growth_rates, has_sufficient_history
from .anomalies import detect_anomalies, AnomalyDetector, deduplicate
from .forecasting import forecast, run_scenarios, compare_scenarios, business_correlation, BusinessContext, Forecaster
from .suggestions import suggest
from .engine import CostAnalyticsEngine, AnalysisReport

__all__ = [
    'normalize', 'normalize_with_report', 'NormalizationReport', 'MetricExtractor',
    'consolidate', 'ServiceConsolidator', 'ConsolidationResult', 'EXTENDED_RULES',
    'build_periods', 'compute_stats', 'trending_services', 'with_growth_rates', 'has_sufficient_history',
    'detect_anomalies', 'AnomalyDetector', 'deduplicate',
    'forecast', 'run_scenarios', 'compare_scenarios', 'business_correlation', 'BusinessContext', 'Forecaster',
    'suggest',
    'CostAnalyticsEngine', 'AnalysisReport',
]
