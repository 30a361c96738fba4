"""
Configuration for the rework station backend.

Loads and validates the environment variables the service needs to run.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env.local
env_path = Path(__file__).parent.parent / '.env.local'
load_dotenv(dotenv_path=env_path)


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Centralized backend configuration."""

    # Environment
    ENVIRONMENT: str = os.getenv('ENVIRONMENT', 'development')

    # API Configuration
    API_HOST: str = os.getenv('API_HOST', '0.0.0.0')
    API_PORT: int = int(os.getenv('API_PORT', '8000'))

    # CORS - allowed origins
    ALLOWED_ORIGINS: list[str] = [
        origin.strip()
        for origin in os.getenv('ALLOWED_ORIGINS', 'http://localhost:3000').split(',')
    ]

    # Logging
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')

    # Redis (station records, locks and notifications)
    REDIS_URL: str = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    REDIS_POOL_MAX_CONNECTIONS: int = int(os.getenv('REDIS_POOL_MAX_CONNECTIONS', '20'))
    REDIS_SOCKET_CONNECT_TIMEOUT: float = float(os.getenv('REDIS_SOCKET_CONNECT_TIMEOUT', '5'))
    REDIS_SOCKET_TIMEOUT: float = float(os.getenv('REDIS_SOCKET_TIMEOUT', '5'))
    REDIS_HEALTH_CHECK_INTERVAL: int = int(os.getenv('REDIS_HEALTH_CHECK_INTERVAL', '30'))

    # Per-station lock. TTL must outlive the slowest operation handler.
    STATION_LOCK_TTL_SECONDS: int = int(os.getenv('STATION_LOCK_TTL_SECONDS', '30'))
    STATION_LOCK_WAIT_SECONDS: float = float(os.getenv('STATION_LOCK_WAIT_SECONDS', '10'))
    STATION_LOCK_RETRY_INTERVAL_SECONDS: float = float(
        os.getenv('STATION_LOCK_RETRY_INTERVAL_SECONDS', '0.05')
    )

    # State change notifications: "<namespace>/station<id>/state"
    NOTIFICATION_NAMESPACE: str = os.getenv('NOTIFICATION_NAMESPACE', 'dcr')
    NOTIFICATION_QOS: int = int(os.getenv('NOTIFICATION_QOS', '0'))
    NOTIFICATION_RETAIN: bool = _as_bool(os.getenv('NOTIFICATION_RETAIN', 'false'))

    # Station defaults
    DEFAULT_STATION_TYPE: str = os.getenv('DEFAULT_STATION_TYPE', 'choco_rework')

    # Simulated duration of physical operations (seconds)
    OPERATION_DELAY_SECONDS: float = float(os.getenv('OPERATION_DELAY_SECONDS', '1.0'))

    @classmethod
    def validate(cls) -> None:
        """
        Validate that critical settings are present and coherent.

        Raises:
            ValueError: If a required variable is missing or out of range.
        """
        required_vars = {
            'REDIS_URL': cls.REDIS_URL,
            'NOTIFICATION_NAMESPACE': cls.NOTIFICATION_NAMESPACE,
        }

        missing = [var for var, value in required_vars.items() if not value]

        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}. "
                f"Please check your .env.local file."
            )

        if cls.NOTIFICATION_QOS not in (0, 1, 2):
            raise ValueError(
                f"NOTIFICATION_QOS must be 0, 1 or 2 (got {cls.NOTIFICATION_QOS})"
            )

        if cls.STATION_LOCK_WAIT_SECONDS <= 0 or cls.STATION_LOCK_TTL_SECONDS <= 0:
            raise ValueError(
                "STATION_LOCK_TTL_SECONDS and STATION_LOCK_WAIT_SECONDS must be positive"
            )


# Global configuration instance
config = Config()


if __name__ == '__main__':
    """Script to validate configuration."""
    try:
        config.validate()
        print("✅ Configuration valid")
        print(f"   - Environment: {config.ENVIRONMENT}")
        print(f"   - Redis: {config.REDIS_URL}")
        print(f"   - Notification namespace: {config.NOTIFICATION_NAMESPACE}")
        print(f"   - Lock TTL: {config.STATION_LOCK_TTL_SECONDS}s")
        print(f"   - Allowed Origins: {config.ALLOWED_ORIGINS}")
    except ValueError as e:
        print(f"❌ Configuration error: {e}")
        exit(1)
