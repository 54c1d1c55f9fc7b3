"""Custom exceptions for CostLens"""


class CostLensError(Exception):
    """Base exception for all CostLens errors"""
    pass


class ConfigurationError(CostLensError):
    """Raised when configuration is invalid"""
    pass


class ValidationError(CostLensError):
    """Raised when input validation fails at an engine entry point"""
    pass


class AnalysisError(CostLensError):
    """Raised when analysis fails"""
    pass


class DataFormatError(CostLensError):
    """Raised when a billing export cannot be read"""
    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"[{source}] {message}")
