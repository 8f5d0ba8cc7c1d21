from accord.version import __version__  # noqa: F401
