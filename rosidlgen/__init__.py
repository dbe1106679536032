"""rosidlgen - Python bindings generator for ROS 2 interface definitions."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("rosidlgen")
except PackageNotFoundError:
    __version__ = "(local)"
