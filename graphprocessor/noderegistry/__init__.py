from . import NodeRegistry  # noqa: F401
