class DatasetValidationError(Exception):
    def __init__(self, message: str, missing_fields: list[str] | None = None):
        super().__init__(message)
        self.missing_fields = missing_fields or []


class ForecastEngineError(Exception):
    """Base class for errors raised across the forecast engine boundary."""


class InsufficientDataError(ForecastEngineError):
    def __init__(self, n_obs: int, required: int):
        super().__init__(f"Series has {n_obs} observations, at least {required} are required.")
        self.n_obs = n_obs
        self.required = required


class NonStationaryError(ForecastEngineError):
    def __init__(self, max_d: int, max_D: int):
        super().__init__(
            f"Series is not stationary after d={max_d}, D={max_D} differences."
        )
        self.max_d = max_d
        self.max_D = max_D


class InvalidSeriesError(ForecastEngineError, ValueError):
    pass
