from .settings import Config, load_config, DEFAULT_JWT_SECRET, DEFAULT_SERVER_URL

__all__ = ['Config', 'load_config', 'DEFAULT_JWT_SECRET', 'DEFAULT_SERVER_URL']
