from flexmet.results.fit_result import FitResult

__all__ = ["FitResult"]
