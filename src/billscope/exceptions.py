class BillscopeError(Exception):
    """
    base class for all billscope errors.
    """


class QueryFailure(BillscopeError):
    """
    QueryFailure is raised when a backend service is unreachable,
    answers with an error status or returns a body that can't be
    decoded. The dashboard layer turns it into a "data unavailable"
    state instead of retrying.
    """

    def __init__(self, service: "str", query: "str", reason: "str") -> "None":
        super().__init__(f"{service} {query} failed: {reason}")
        self.service = service
        self.query = query
        self.reason = reason


class MalformedRecord(BillscopeError, ValueError):
    """
    a usage record field that can't be parsed as a number.
    """


class MalformedSample(BillscopeError, ValueError):
    """
    a metric sample rejected at the producer boundary.
    """
