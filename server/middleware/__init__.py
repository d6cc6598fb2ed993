"""HTTP middleware for the Crazy Eights server."""

from .request_id import RequestIDMiddleware

__all__ = ["RequestIDMiddleware"]
