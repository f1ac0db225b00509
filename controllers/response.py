from flask import jsonify
from werkzeug.exceptions import HTTPException

from services.errors import RentError


def success_response(message, data=None, status_code=200):
    body = {'status': True, 'message': message}
    if data is not None:
        body['data'] = data
    return jsonify(body), status_code


def error_response(message, error, status_code, kind=None):
    body = {'status': False, 'message': message, 'error': error}
    if kind:
        body['kind'] = kind
    return jsonify(body), status_code


def handle_rent_error(err):
    return error_response(err.default_message, err.message, err.status_code, kind=err.kind)


def handle_http_error(err):
    return error_response(err.name, err.description, err.code)


def register_error_handlers(app):
    app.register_error_handler(RentError, handle_rent_error)
    app.register_error_handler(HTTPException, handle_http_error)
