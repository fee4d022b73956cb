"""Pytest configuration and shared fixtures for flowviz tests."""

import pytest

from flowviz.config import ColumnMapping
from flowviz.ingestion import rows_from_records


@pytest.fixture
def simple_rows():
    """Three rows aggregating into A->B (8, two rows) and A->C (2)."""
    return [
        {"from": "A", "to": "B", "qty": 5},
        {"from": "A", "to": "B", "qty": 3},
        {"from": "A", "to": "C", "qty": 2},
    ]


@pytest.fixture
def weighted_mapping():
    return ColumnMapping(origin="from", destination="to", weight="qty")


@pytest.fixture
def referral_records():
    """Clinic referral records with coordinates and a region attribute."""
    return [
        {
            "Origin": "Clinic North",
            "Destination": "Hospital Central",
            "Referrals": 12,
            "OLat": 40.0,
            "OLng": -3.7,
            "DLat": 40.4,
            "DLng": -3.7,
            "Region": "Madrid",
        },
        {
            "Origin": "Clinic South",
            "Destination": "Hospital Central",
            "Referrals": 7,
            "OLat": 39.5,
            "OLng": -3.6,
            "DLat": 40.4,
            "DLng": -3.7,
            "Region": "Madrid",
        },
        {
            "Origin": "Clinic North",
            "Destination": "Hospital Coast",
            "Referrals": 4,
            "OLat": 40.0,
            "OLng": -3.7,
            "DLat": 41.4,
            "DLng": 2.2,
            "Region": "Catalonia",
        },
        {
            "Origin": "Hospital Central",
            "Destination": "Hospital Coast",
            "Referrals": 3,
            "OLat": 40.4,
            "OLng": -3.7,
            "DLat": 41.4,
            "DLng": 2.2,
            "Region": "Catalonia",
        },
        {
            "Origin": "  ",
            "Destination": "Hospital Coast",
            "Referrals": 99,
            "OLat": "",
            "OLng": "",
            "DLat": 41.4,
            "DLng": 2.2,
            "Region": "Catalonia",
        },
        {
            "Origin": "Clinic South",
            "Destination": "Hospital Central",
            "Referrals": "n/a",
            "OLat": "bad",
            "OLng": -3.6,
            "DLat": 40.4,
            "DLng": -3.7,
            "Region": "Madrid",
        },
    ]


@pytest.fixture
def referral_rows(referral_records):
    return rows_from_records(referral_records)


@pytest.fixture
def referral_mapping():
    return ColumnMapping(
        origin="Origin",
        destination="Destination",
        weight="Referrals",
        origin_lat="OLat",
        origin_lng="OLng",
        dest_lat="DLat",
        dest_lng="DLng",
    )


@pytest.fixture
def referral_graph(referral_rows, referral_mapping):
    from flowviz.state import GraphState

    return GraphState.build(referral_rows.rows, referral_mapping)


@pytest.fixture
def sample_config():
    """Sample configuration dictionary for testing."""
    return {
        "input": {"path": "referrals.csv", "sheet": None},
        "columns": {
            "origin": "Origin",
            "destination": "Destination",
            "weight": "Referrals",
            "origin_lat": "OLat",
            "origin_lng": "OLng",
            "dest_lat": "DLat",
            "dest_lng": "DLng",
        },
        "views": {
            "flow_top_n": 10,
            "network_top_n": 20,
            "map_cost_mode": False,
            "map_color_by": "Region",
            "ego_panels": 2,
        },
        "output": {"json_indent": 2},
    }


@pytest.fixture
def referral_csv(tmp_path, referral_records):
    """Write the referral records to a CSV file."""
    import pandas as pd

    path = tmp_path / "referrals.csv"
    pd.DataFrame(referral_records).to_csv(path, index=False)
    return path


@pytest.fixture
def temp_config_file(tmp_path, sample_config, referral_csv):
    """Create a temporary configuration file pointing at the referral CSV."""
    import yaml

    config_file = tmp_path / "test_config.yml"
    with open(config_file, "w") as f:
        yaml.dump(sample_config, f, default_flow_style=False, indent=2)
    return config_file


@pytest.fixture
def invalid_config_file(tmp_path):
    """Create an invalid YAML configuration file for testing."""
    config_file = tmp_path / "invalid_config.yml"
    config_file.write_text("invalid: yaml: content: [unclosed")
    return config_file
