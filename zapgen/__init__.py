"""zapgen - template helpers and generation engine for ZCL device firmware."""

__version__ = "0.1.0"
