from .exceptions import CostLensError, ConfigurationError, ValidationError, AnalysisError, DataFormatError
from .config import Settings, get_settings, reload_settings

__all__ = [
    'CostLensError', 'ConfigurationError', 'ValidationError', 'AnalysisError', 'DataFormatError',
    'Settings', 'get_settings', 'reload_settings',
]
