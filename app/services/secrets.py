import json
from dataclasses import dataclass
import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class DatabaseCredentials:
    username: str
    password: str


class SecretStore:
    """Reads database credentials from AWS Secrets Manager"""

    def __init__(self, client):
        self.client = client

    def get_database_credentials(self, secret_id: str) -> DatabaseCredentials:
        """
        Fetch a JSON secret holding "username" and "password"

        Raises whatever the client raises (missing secret, access denied)
        and KeyError if the secret lacks either field.
        """
        response = self.client.get_secret_value(SecretId=secret_id)
        secret = json.loads(response["SecretString"])

        logger.info("database_secret_fetched", secret_id=secret_id)
        return DatabaseCredentials(
            username=secret["username"],
            password=secret["password"]
        )
