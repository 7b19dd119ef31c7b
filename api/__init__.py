from .server import create_app, ControlPlane, bind_socket, bearer_token

__all__ = ['create_app', 'ControlPlane', 'bind_socket', 'bearer_token']
