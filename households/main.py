from households.api.main import app

__all__ = ["app"]
