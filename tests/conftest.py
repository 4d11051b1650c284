"""
Pytest configuration and shared fixtures.
"""

import pytest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from labrinth.client import Client


API_URL = 'https://api.modrinth.com/v2/'


@pytest.fixture
def client():
    """Client with fast retries for testing."""
    with Client(max_retries=2, retry_delay=0.0) as c:
        yield c


@pytest.fixture
def sample_hit():
    """Single search hit as returned by the search endpoint."""
    return {
        'project_id': 'AANobbMI',
        'slug': 'sodium',
        'title': 'Sodium',
        'project_type': 'mod',
        'categories': ['fabric', 'optimization'],
        'versions': ['1.19.4', '1.20.1'],
        'downloads': 1000000
    }


@pytest.fixture
def sample_project():
    """Project record as returned by GET project/{id}."""
    return {
        'id': 'AANobbMI',
        'slug': 'sodium',
        'title': 'Sodium',
        'description': 'A modern rendering engine',
        'project_type': 'mod',
        'categories': ['optimization'],
        'client_side': 'required',
        'server_side': 'unsupported',
        'body': 'Long description',
        'status': 'approved',
        'additional_categories': [],
        'issues_url': 'https://github.com/CaffeineMC/sodium/issues',
        'source_url': None,
        'wiki_url': None,
        'discord_url': None,
        'donation_urls': [],
        'license': {'id': 'LGPL-3.0-only', 'name': 'GNU LGPL v3', 'url': None},
        'downloads': 1000000
    }


@pytest.fixture
def rate_headers():
    return {
        'X-Ratelimit-Limit': '300',
        'X-Ratelimit-Remaining': '299',
        'X-Ratelimit-Reset': '60'
    }
