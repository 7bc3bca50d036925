from flask import jsonify


class RoundError(Exception):
    """Base for request failures that reach the client as JSON."""

    code = 'internal'
    status_code = 500

    def __init__(self, message: str = ''):
        super().__init__(message)
        self.message = message or self.code

    def to_dict(self):
        return {'error': self.code, 'message': self.message}


class InvalidArgument(RoundError):
    code = 'invalid-argument'
    status_code = 400


class Unauthenticated(RoundError):
    code = 'unauthenticated'
    status_code = 401


class Internal(RoundError):
    code = 'internal'
    status_code = 500


def register_error_handlers(app) -> None:
    @app.errorhandler(RoundError)
    def handle_round_error(exc: RoundError):
        if exc.status_code >= 500:
            app.logger.error(f"[error] code={exc.code} message={exc.message}")
        return jsonify(exc.to_dict()), exc.status_code
