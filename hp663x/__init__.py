from .config import PROGRAM, VERSION

__version__ = VERSION
__all__ = ["PROGRAM", "VERSION", "__version__"]
