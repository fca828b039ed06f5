"""Configuration for the TestRail reporter."""

from pydantic import BaseModel, SecretStr


class TestRailConfig(BaseModel):
    """Configuration for TestRail reporting."""

    __test__ = False

    url: str
    username: str
    password: SecretStr
    # Appended to url; TestRail routes its API through the query string
    api_path: str = "/index.php?/api/v2"
    project_id: int = 1
    run_description: str = "Automated test run."
    # Seconds before a single API call gives up
    timeout: float = 30
