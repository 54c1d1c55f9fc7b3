"""CostLens - cloud cost analytics and forecasting"""

__version__ = "0.1.0"

from .analysis import CostAnalyticsEngine, AnalysisReport
from .core import Settings

__all__ = ['CostAnalyticsEngine', 'AnalysisReport', 'Settings', '__version__']
