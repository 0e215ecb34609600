import configparser
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class SSHConfig:
    host: str
    port: int = 22
    username: str = "anonymous"
    password: str | None = None
    key_file: str | None = None  # Path to SSH private key
    key_passphrase: str | None = None  # Passphrase for encrypted keys


@dataclass
class ConnectionConfig:
    timeout_seconds: int = 30
    keepalive_interval_seconds: int = 60


@dataclass
class TransferConfig:
    chunk_size: int = 32768  # Bytes per read stream chunk
    high_water_mark: int = 65535  # Write stream buffer limit before flushing


@dataclass
class LogConfig:
    level: str = "INFO"
    file: str = ""
    console: bool = True


@dataclass
class AppConfig:
    ssh: SSHConfig
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    transfer: TransferConfig = field(default_factory=TransferConfig)
    logging: LogConfig = field(default_factory=LogConfig)


def _parse_int(section: configparser.SectionProxy, key: str, label: str | None = None) -> int:
    value = section.get(key)
    try:
        return int(value)
    except ValueError:
        raise ValueError(
            f"Invalid {label or key} value in config: '{value}' - must be an integer"
        ) from None


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def load_config(config_path: str | None = None, **cli_args) -> AppConfig:
    """
    Load configuration from an INI file and/or CLI arguments.
    CLI arguments take precedence over config file.

    Args:
        config_path: Path to the INI configuration file.
        **cli_args: Key-value pairs from command line arguments.

    Returns:
        AppConfig: The populated configuration object.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If the host is missing or a numeric field is malformed.
    """
    ssh_config = {
        "host": None,
        "port": 22,
        "username": "anonymous",
        "password": None,
        "key_file": None,
        "key_passphrase": None,
    }
    connection_config = {
        "timeout_seconds": 30,
        "keepalive_interval_seconds": 60,
    }
    transfer_config = {
        "chunk_size": 32768,
        "high_water_mark": 65535,
    }
    log_config = {
        "level": "INFO",
        "file": "",
        "console": True,
    }

    # Parse INI file if provided
    if config_path is not None:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        parser = configparser.ConfigParser()
        parser.read(config_file, encoding="utf-8")

        # Load [ssh] section
        if parser.has_section("ssh"):
            ssh_section = parser["ssh"]
            if ssh_section.get("host"):
                ssh_config["host"] = ssh_section.get("host")
            if ssh_section.get("port"):
                ssh_config["port"] = _parse_int(ssh_section, "port", "SSH port")
            if ssh_section.get("username"):
                ssh_config["username"] = ssh_section.get("username")
            if ssh_section.get("password"):
                ssh_config["password"] = ssh_section.get("password")
            if ssh_section.get("key_file"):
                ssh_config["key_file"] = ssh_section.get("key_file")
            if ssh_section.get("key_passphrase"):
                ssh_config["key_passphrase"] = ssh_section.get("key_passphrase")

        # Load [connection] section
        if parser.has_section("connection"):
            conn_section = parser["connection"]
            for key in connection_config:
                if conn_section.get(key):
                    connection_config[key] = _parse_int(conn_section, key)

        # Load [transfer] section
        if parser.has_section("transfer"):
            transfer_section = parser["transfer"]
            for key in transfer_config:
                if transfer_section.get(key):
                    transfer_config[key] = _parse_int(transfer_section, key)

        # Load [logging] section
        if parser.has_section("logging"):
            log_section = parser["logging"]
            if log_section.get("level"):
                log_config["level"] = log_section.get("level")
            if log_section.get("file"):
                log_config["file"] = log_section.get("file")
            if log_section.get("console"):
                log_config["console"] = _parse_bool(log_section.get("console", "false"))

    # Override with CLI arguments (cli_args take precedence)
    if cli_args.get("host") is not None:
        ssh_config["host"] = cli_args["host"]
    if cli_args.get("port") is not None:
        ssh_config["port"] = int(cli_args["port"])
    if cli_args.get("username") is not None:
        ssh_config["username"] = cli_args["username"]
    if cli_args.get("password") is not None:
        ssh_config["password"] = cli_args["password"] or None
    if cli_args.get("key_file") is not None:
        ssh_config["key_file"] = cli_args["key_file"]
    if cli_args.get("key_passphrase") is not None:
        ssh_config["key_passphrase"] = cli_args["key_passphrase"]
    if cli_args.get("debug"):
        log_config["level"] = "DEBUG"
        log_config["console"] = True

    # Validate required fields
    if not ssh_config["host"]:
        raise ValueError("Missing required configuration fields: host")

    return AppConfig(
        ssh=SSHConfig(**ssh_config),
        connection=ConnectionConfig(**connection_config),
        transfer=TransferConfig(**transfer_config),
        logging=LogConfig(**log_config),
    )
