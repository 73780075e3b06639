"""Database URL construction from settings"""
from dataclasses import dataclass
from urllib.parse import quote_plus, urlparse

from clio_badges.config import Settings, settings

SUPPORTED_SCHEMES = ('postgresql', 'sqlite')

@dataclass
class DatabaseCredentials:
    """Database credentials container with validation"""
    host: str
    port: str
    name: str
    user: str
    password: str
    ssl_mode: str = 'prefer'

    def to_connection_string(self) -> str:
        """Generate database connection string with proper escaping"""
        return (
            f"postgresql://{quote_plus(self.user)}:{quote_plus(self.password)}@{self.host}:{self.port}/"
            f"{self.name}?sslmode={self.ssl_mode}"
        )

    @classmethod
    def from_settings(cls, config: Settings) -> 'DatabaseCredentials':
        """Create credentials from the discrete DB_* settings"""
        return cls(
            host=config.DB_HOST,
            port=config.DB_PORT,
            name=config.DB_NAME,
            user=config.DB_USER,
            password=config.DB_PASSWORD or '',
            ssl_mode=config.DB_SSL_MODE
        )

    @classmethod
    def validate_url(cls, url: str) -> bool:
        """Validate that a database URL uses a supported backend"""
        try:
            parsed = urlparse(url)
        except ValueError:
            return False

        # Driver suffixes such as postgresql+psycopg2 are fine
        scheme = parsed.scheme.split('+', 1)[0]
        if scheme not in SUPPORTED_SCHEMES:
            return False

        if scheme == 'postgresql':
            return bool(parsed.hostname) and bool(parsed.path.lstrip('/'))

        return True

class DatabaseManager:
    """Resolves the database connection string"""

    @staticmethod
    def get_connection_string(config: Settings = settings) -> str:
        """
        Resolve the connection string from settings.

        Order of precedence: DATABASE_URL, then DB_HOST and friends,
        then a local SQLite file.

        Returns:
            Complete database connection string

        Raises:
            ValueError: If DATABASE_URL names an unsupported backend
        """
        if config.DATABASE_URL:
            if not DatabaseCredentials.validate_url(config.DATABASE_URL):
                raise ValueError(f"Unsupported DATABASE_URL: {config.DATABASE_URL.split('://', 1)[0]}://...")
            return config.DATABASE_URL

        if config.DB_HOST:
            return DatabaseCredentials.from_settings(config).to_connection_string()

        return f"sqlite:///{config.SQLITE_PATH}"
