import os


def get_settings_module() -> str:
    # Environment comes from APP_ENV, default 'development'
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "visitor_register.config.production"

    if env in {"test", "testing"}:
        return "visitor_register.config.testing"

    return "visitor_register.config.development"
