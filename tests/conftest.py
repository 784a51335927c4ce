from __future__ import annotations

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv


def _try_load_env() -> None:
    """
    Load the repo-level .env if present so running tests locally is easy.
    """
    env_path = Path(__file__).resolve().parents[1] / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=False)


_try_load_env()


@pytest.fixture(scope="session")
def food_search_url() -> str:
    url = os.getenv("FOOD_SEARCH_URL")
    if not url:
        pytest.skip("FOOD_SEARCH_URL not set; live service tests skipped.")
    return url


@pytest.fixture(scope="session")
def default_locale() -> str:
    return os.getenv("FOOD_SEARCH_TEST_LOCALE", "UK_V2_2022")
