from importlib import metadata

try:
    REQFLOW_VERSION = metadata.version("reqflow")
except metadata.PackageNotFoundError:
    # Local run without installation
    REQFLOW_VERSION = "dev"
