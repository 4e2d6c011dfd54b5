"""Business-rule failures raised by the engines. All of them surface as HTTP 400."""


class FleetError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FleetError):
    """Malformed or missing input."""


class NotFoundError(FleetError):
    """A referenced entity does not exist."""


class ConflictError(FleetError):
    """A business rule forbids the requested change (double booking, wrong technician)."""


class FieldErrors(FleetError):
    """Field-level failures, rendered as an `errors` array like request validation failures."""

    def __init__(self, errors):
        super().__init__("; ".join(e["msg"] for e in errors))
        self.errors = errors

    @classmethod
    def single(cls, param: str, msg: str, location: str = "body") -> "FieldErrors":
        return cls([{"msg": msg, "param": param, "location": location}])
