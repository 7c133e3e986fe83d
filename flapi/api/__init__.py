"""HTTP blueprints. Registered by ``flapi.flask_app.create_app``."""
