from .mock_loadcell import MockLoadCell
from .simulator import LoadSimulator, serve_simulator

__all__ = ["MockLoadCell", "LoadSimulator", "serve_simulator"]
