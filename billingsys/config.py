"""Service configuration loaded from YAML files."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional, TypeVar, Union

import yaml

STATUS_SUCCESS = "success"
STATUS_FAIL = "fail"

BFF_CONFIG_PATH = "../../config.yaml"
SERVICE_CONFIG_PATH = "../config.yaml"

PathType = Union[str, "os.PathLike[str]"]
T = TypeVar("T")


@dataclass
class ServerConfig:
    """Address the HTTP front end listens on."""

    address: str = ""


@dataclass
class ConnectionAddress:
    """Address of a downstream service."""

    address: str = ""


@dataclass
class DatabaseConfig:
    """Database connection settings."""

    host: str = ""
    port: str = ""
    username: str = ""
    password: str = ""
    database: str = ""

    def dsn(self) -> str:
        """Return the key=value connection string for these settings."""
        return (
            f"host={self.host} port={self.port} user={self.username} "
            f"password={self.password} dbname={self.database} "
        )


@dataclass
class GRPCServerConfig:
    """Host and port a service's RPC server binds to."""

    host: str = ""
    port: str = ""


@dataclass
class BffConfig:
    """Configuration of the HTTP front end."""

    server: ServerConfig = field(default_factory=ServerConfig)
    billing_connection: ConnectionAddress = field(default_factory=ConnectionAddress)
    shipment_connection: ConnectionAddress = field(default_factory=ConnectionAddress)


@dataclass
class BillingServiceConfig:
    """Configuration of the billing service."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    grpc_server: GRPCServerConfig = field(default_factory=GRPCServerConfig)


@dataclass
class ShipmentServiceConfig:
    """Configuration of the shipment service."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    grpc_server: GRPCServerConfig = field(default_factory=GRPCServerConfig)
    billing_connection: ConnectionAddress = field(default_factory=ConnectionAddress)


def _mapping(value: Any, where: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{where} must be a mapping, got {type(value).__name__}")
    return value


def _scalar(value: Any, where: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValueError(f"config key {where!r} must be a scalar, got {type(value).__name__}")


def _section(cls: type[T], data: Dict[str, Any], key: str,
             renames: Optional[Dict[str, str]] = None) -> T:
    section = _mapping(data.get(key), key)
    renames = renames or {}
    kwargs = {}
    for f in fields(cls):  # type: ignore[arg-type]
        name = renames.get(f.name, f.name)
        if name in section:
            kwargs[f.name] = _scalar(section[name], f"{key}.{name}")
    return cls(**kwargs)


def _read(path: PathType) -> Dict[str, Any]:
    with open(path, encoding="utf-8") as handle:
        return _mapping(yaml.safe_load(handle), "config")


def _database(data: Dict[str, Any]) -> DatabaseConfig:
    return _section(DatabaseConfig, data, "database", {"database": "db_name"})


def load_bff_config(path: PathType = BFF_CONFIG_PATH) -> BffConfig:
    """Read the front end's configuration from a YAML file."""
    data = _read(path)
    return BffConfig(
        server=_section(ServerConfig, data, "server"),
        billing_connection=_section(ConnectionAddress, data, "billing_connection"),
        shipment_connection=_section(ConnectionAddress, data, "shipment_connection"),
    )


def load_billing_config(path: PathType = SERVICE_CONFIG_PATH) -> BillingServiceConfig:
    """Read the billing service's configuration from a YAML file."""
    data = _read(path)
    return BillingServiceConfig(
        database=_database(data),
        grpc_server=_section(GRPCServerConfig, data, "grpc_server"),
    )


def load_shipment_config(path: PathType = SERVICE_CONFIG_PATH) -> ShipmentServiceConfig:
    """Read the shipment service's configuration from a YAML file."""
    data = _read(path)
    return ShipmentServiceConfig(
        database=_database(data),
        grpc_server=_section(GRPCServerConfig, data, "grpc_server"),
        billing_connection=_section(ConnectionAddress, data, "billing_connection"),
    )