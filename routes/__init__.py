"""
Flask route blueprints for the brochure proxy.

- api: JSON endpoints (preview, PDF download, thumbnails, products, health)

Each blueprint is registered with the Flask app in create_app().
"""

from .api import api_bp

__all__ = [
    "api_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(api_bp)
