"""
Database Enumerations

Values stored in TYPE / SIDE / STORAGE_OPTION columns and well-known
session and package-option keys.
"""

from enum import Enum


class PackageType(str, Enum):
    """Kinds of loaded packages."""

    ZCL_PROPERTIES = "zclProperties"
    GEN_TEMPLATES_JSON = "genTemplateJson"
    GEN_SINGLE_TEMPLATE = "genSingleTemplate"


class Side(str, Enum):
    """Cluster side."""

    CLIENT = "client"
    SERVER = "server"


class StorageOption(str, Enum):
    """Where an attribute value is kept on the device."""

    RAM = "RAM"
    NVM = "NVM"
    EXTERNAL = "External"


class SessionOption(str, Enum):
    """Session key/value keys the helpers know about."""

    MANUFACTURER_CODES = "manufacturerCodes"
    DEFAULT_RESPONSE_POLICY = "defaultResponsePolicy"


class PackageOptionCategory(str, Enum):
    """Package option categories with a built-in meaning."""

    CLI = "cli"
