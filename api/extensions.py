"""
Accessors for the per-app handles built by create_app().
"""
from flask import current_app


def get_storage():
    """DBStorage for the current app"""
    return current_app.extensions["storage"]


def get_token_service():
    """TokenService for the current app"""
    return current_app.extensions["token_service"]
