from flask import jsonify


class StorefrontError(Exception):
    status_code = 500
    code = "ERROR"

    def __init__(self, message: str, status_code: int | None = None, code: str | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        return {"message": self.message, "code": self.code}


class EmptyQuery(StorefrontError):
    status_code = 400
    code = "EMPTY_QUERY"

    def __init__(self, message: str = "Search query must not be empty"):
        super().__init__(message)


class NotFound(StorefrontError):
    status_code = 404
    code = "NOT_FOUND"


class ValidationError(StorefrontError):
    status_code = 400
    code = "VALIDATION_ERROR"


def register_error_handlers(app):
    @app.errorhandler(StorefrontError)
    def handle_storefront_error(error):
        if error.status_code >= 500:
            app.logger.error("Unhandled storefront error: %s", error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(401)
    def handle_unauthorized(error):
        return jsonify({"message": "Authentication required", "code": "UNAUTHORIZED"}), 401

    @app.errorhandler(403)
    def handle_forbidden(error):
        return jsonify({"message": "Admin access required", "code": "FORBIDDEN"}), 403

    @app.errorhandler(404)
    def handle_missing_route(error):
        return jsonify({"message": "Resource not found", "code": "NOT_FOUND"}), 404
