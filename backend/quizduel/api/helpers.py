from flask import request

from quizduel.errors import InvalidInput


def json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidInput('Request body must be a JSON object.')
    return data


def request_user_id():
    """User id from the X-User-Id header, falling back to the JSON body."""
    return request.headers.get('X-User-Id') or json_body().get('userId')


def request_username():
    return json_body().get('username') or request.headers.get('X-Username')
