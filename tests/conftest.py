"""Shared fixtures: configuration and exported test records."""

import pytest

from step_translator.config import Config


@pytest.fixture
def config(tmp_path):
    """Configuration writing everything under a temporary output root."""
    return Config(output_root=tmp_path / "out")


@pytest.fixture
def login_record():
    """Public browser test: navigate, type a templated email, click submit."""
    return {
        "public_id": "abc-123",
        "name": "Login Flow",
        "locations": ["aws:us-east-1"],
        "tags": ["team:web"],
        "status": "live",
        "config": {"request": {"url": "https://app.example/login"}},
        "steps": [
            {
                "type": "goToUrl",
                "name": "Open login",
                "params": {"value": "https://app.example/login"},
            },
            {
                "type": "typeText",
                "name": 'Type text on input "email"',
                "params": {
                    "value": "{{ USER_EMAIL }}",
                    "element": {
                        "targetOuterHTML": '<input id="email" type="email">',
                        "url": "https://app.example/login",
                    },
                },
            },
            {
                "type": "click",
                "name": 'Click on button "Sign in"',
                "allowFailure": False,
                "params": {
                    "element": {
                        "multiLocator": {"ro": '//*[@id="submit"]'},
                        "url": "https://app.example/login",
                    },
                },
            },
        ],
    }


@pytest.fixture
def widget_record():
    """Private browser test whose only step clicks inside an embedded widget."""
    return {
        "public_id": "def-456",
        "name": "Dashboard Widget",
        "privateLocations": ["pl:office-network"],
        "config": {"request": {"url": "https://app.example/"}},
        "steps": [
            {
                "type": "click",
                "name": 'Click on div "Recent Reports..."',
                "params": {
                    "element": {
                        "targetOuterHTML": '<div class="tile">Recent Reports</div>',
                        "multiLocator": {"co": '[{"text": "Recent Reports"}]'},
                        "url": "https://cdn.example/frames/widget.html",
                    },
                },
            },
        ],
    }


@pytest.fixture
def api_record():
    """Multi-step API test with one templated POST request."""
    return {
        "public_id": "api-1",
        "name": "User API",
        "locations": ["aws:eu-west-1"],
        "config": {
            "steps": [
                {
                    "name": "Create user",
                    "subtype": "http",
                    "request": {
                        "method": "POST",
                        "url": "{{ API_BASE }}/users",
                        "headers": {"Authorization": "Bearer {{ API_TOKEN }}"},
                        "body": {"name": "jane"},
                    },
                    "assertions": [
                        {"type": "statusCode", "operator": "is", "target": 201},
                    ],
                },
            ],
        },
    }


@pytest.fixture
def tcp_record():
    """Multi-step API test containing a step that is not an HTTP request."""
    return {
        "public_id": "api-2",
        "name": "Port Check",
        "config": {
            "steps": [
                {"name": "Ping", "subtype": "tcp", "request": {"host": "db.example", "port": 5432}},
                {"name": "Pause", "subtype": "wait"},
            ],
        },
    }
