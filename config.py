import os
from datetime import timedelta

class Config:
    API_TITLE = "EnviroWatch Environmental Monitoring API"
    API_VERSION = "1.0.0"
    OPENAPI_VERSION = "3.0.3"
    OPENAPI_URL_PREFIX = "/"
    OPENAPI_JSON_PATH = "openapi.json"
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///envirowatch.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = os.getenv("SQLALCHEMY_ECHO", "false").lower() == "true"
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-this-in-prod")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=int(os.getenv("JWT_EXPIRES_DAYS", "7")))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    PROPAGATE_EXCEPTIONS = True

    API_SPEC_OPTIONS = {
        "components": {
            "securitySchemes": {
                "bearerAuth": {
                    "type": "http",
                    "scheme": "bearer",
                    "bearerFormat": "JWT",
                }
            }
        },
        # Every route needs a bearer token unless it opts out with @blp.doc(security=[])
        "security": [{"bearerAuth": []}],
    }
