"""Domain exceptions raised by the service layer and mapped to HTTP by the routers."""


class PolicyValidationError(ValueError):
    """Rejected admin policy update. Nothing was written."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class SubmissionValidationError(ValueError):
    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class PaymentGatewayError(RuntimeError):
    pass


class UnknownPlanError(ValueError):
    pass
