"""Tests for application state commands."""

import pytest

from flowviz.config import ColumnMapping, ViewDefaults
from flowviz.projection import (
    FLOW_VIEW,
    NETWORK_VIEW,
    EgoParams,
    MapParams,
    TopNParams,
    TopNPayload,
)
from flowviz.state import (
    CONFIG_VALID_MESSAGE,
    MAP_VIEW,
    NO_ROWS_MESSAGE,
    AppState,
    GraphState,
    ego_view_id,
    project,
)


@pytest.fixture
def loaded_state(referral_rows):
    return AppState.initial(ViewDefaults(ego_panels=2)).load_rows(referral_rows)


@pytest.fixture
def ready_state(loaded_state, referral_mapping):
    return loaded_state.set_column_mapping(referral_mapping)


def test_initial_state_views() -> None:
    state = AppState.initial(ViewDefaults(flow_top_n=7, ego_panels=3))

    assert state.view_ids == [FLOW_VIEW, NETWORK_VIEW, MAP_VIEW, "ego-1", "ego-2", "ego-3"]
    assert state.view_params[FLOW_VIEW] == TopNParams(top_n=7)
    assert state.view_params[NETWORK_VIEW] == TopNParams(top_n=100)
    assert state.graph is None
    assert state.active_view == FLOW_VIEW
    assert state.payload(FLOW_VIEW) is None


def test_ego_view_id() -> None:
    assert ego_view_id(3) == "ego-3"


def test_load_rows_status(loaded_state) -> None:
    assert loaded_state.status.level == "info"
    assert loaded_state.status.message == "Loaded: 6 rows, 8 columns"
    assert loaded_state.graph is None


def test_set_column_mapping_builds_graph(ready_state) -> None:
    assert ready_state.status.message == CONFIG_VALID_MESSAGE
    assert ready_state.graph is not None
    assert len(ready_state.graph.edges) == 4
    for view_id in ready_state.view_ids:
        assert ready_state.payload(view_id) is not None


def test_mapping_without_rows() -> None:
    state = AppState.initial().set_column_mapping(
        ColumnMapping(origin="a", destination="b")
    )
    assert state.status.level == "warning"
    assert state.status.message == NO_ROWS_MESSAGE


@pytest.mark.parametrize(
    "mapping,message",
    [
        (ColumnMapping(origin="Origin"), "Select Origin and Destination to proceed."),
        (
            ColumnMapping(origin="Origin", destination="Origin"),
            "Origin and Destination cannot be the same column.",
        ),
        (ColumnMapping(origin="Origin", destination="Nope"), "not found"),
    ],
)
def test_invalid_mapping_preserves_graph(ready_state, mapping, message) -> None:
    after = ready_state.set_column_mapping(mapping)

    assert after.status.level == "warning"
    assert message in after.status.message
    assert after.graph is ready_state.graph
    assert after.mapping == ready_state.mapping
    assert after.projections == ready_state.projections


def test_commands_do_not_mutate_receiver(loaded_state, referral_mapping) -> None:
    ready = loaded_state.set_column_mapping(referral_mapping)
    assert loaded_state.graph is None
    assert ready is not loaded_state

    switched = ready.switch_view(MAP_VIEW)
    assert ready.active_view == FLOW_VIEW
    assert switched.active_view == MAP_VIEW


def test_load_rows_resets_graph(ready_state, referral_rows) -> None:
    reloaded = ready_state.load_rows(referral_rows)
    assert reloaded.graph is None
    assert reloaded.mapping == ColumnMapping()
    assert reloaded.payload(FLOW_VIEW) is None


def test_view_independence(ready_state) -> None:
    network_before = ready_state.payload(NETWORK_VIEW)
    map_before = ready_state.payload(MAP_VIEW)

    after = ready_state.set_view_params(FLOW_VIEW, TopNParams(top_n=1))

    assert len(after.payload(FLOW_VIEW).edges) == 1
    assert after.payload(NETWORK_VIEW) is network_before
    assert after.payload(MAP_VIEW) is map_before
    assert after.view_params[NETWORK_VIEW] == ready_state.view_params[NETWORK_VIEW]


def test_ego_panels_are_independent(ready_state) -> None:
    state = ready_state.set_view_params("ego-1", EgoParams(focus="Hospital Central"))
    state = state.set_view_params("ego-2", EgoParams(focus="Clinic South"))

    assert state.payload("ego-1").focus == "Hospital Central"
    assert state.payload("ego-2").focus == "Clinic South"
    assert state.stats_for("ego-2").edge_count == 1


def test_set_view_params_rejects_unknown_view(ready_state) -> None:
    with pytest.raises(KeyError):
        ready_state.set_view_params("ego-9", EgoParams(focus="x"))


def test_set_view_params_rejects_wrong_type(ready_state) -> None:
    with pytest.raises(TypeError):
        ready_state.set_view_params(MAP_VIEW, TopNParams())


def test_view_params_before_mapping(loaded_state) -> None:
    state = loaded_state.set_view_params(FLOW_VIEW, TopNParams(top_n=3))
    assert state.view_params[FLOW_VIEW].top_n == 3
    assert state.payload(FLOW_VIEW) is None


def test_switch_view_reports_cached_stats(ready_state) -> None:
    state = ready_state.set_view_params(FLOW_VIEW, TopNParams(top_n=2))
    assert state.active_stats.displayed_links == 2

    state = state.switch_view(NETWORK_VIEW)
    assert state.active_stats.displayed_links == 4

    state = state.switch_view(MAP_VIEW)
    assert state.active_stats.label() == "Nodes: 4 · Displayed links: 4/4"


def test_switch_view_unknown(ready_state) -> None:
    with pytest.raises(KeyError):
        ready_state.switch_view("sankey")


def test_mapping_change_recomputes_with_current_params(ready_state) -> None:
    state = ready_state.set_view_params(FLOW_VIEW, TopNParams(top_n=1))
    state = state.set_column_mapping(ColumnMapping(origin="Origin", destination="Destination"))

    payload = state.payload(FLOW_VIEW)
    assert len(payload.edges) == 1
    # Count mode: Clinic South -> Hospital Central appears twice
    assert payload.stats.total_weight == 5.0
    assert not state.graph.coordinates.available


def test_project_dispatch(referral_graph) -> None:
    assert isinstance(project(referral_graph, NETWORK_VIEW, TopNParams()), TopNPayload)
    assert project(referral_graph, "ego-1", EgoParams(focus="Clinic North")).focus == (
        "Clinic North"
    )
    with pytest.raises(TypeError):
        project(referral_graph, MAP_VIEW, EgoParams())


def test_graph_state_options(referral_graph) -> None:
    assert referral_graph.origin_options() == [
        "Clinic North",
        "Clinic South",
        "Hospital Central",
    ]
    assert referral_graph.destination_options() == ["Hospital Central", "Hospital Coast"]
    assert referral_graph.summary() == {
        "rows": 6,
        "rowsUsed": 5,
        "edges": 4,
        "nodes": 4,
        "nodesWithCoordinates": 4,
    }


def test_ego_choices_case_insensitive() -> None:
    graph = GraphState.build(
        [
            {"o": "x", "d": "beta"},
            {"o": "", "d": "Alpha"},
            {"o": "y", "d": "alpha"},
            {"o": "z", "d": "  "},
            {"o": "w", "d": "Beta"},
        ],
        ColumnMapping(origin="o", destination="d"),
    )
    assert graph.ego_choices() == ["Alpha", "alpha", "Beta", "beta"]


def test_map_params_default_from_view_defaults(referral_rows, referral_mapping) -> None:
    state = AppState.initial(ViewDefaults(map_color_by="Region", map_cost_mode=True))
    state = state.load_rows(referral_rows).set_column_mapping(referral_mapping)

    assert state.view_params[MAP_VIEW] == MapParams(cost_mode=True, color_by="Region")
    assert state.payload(MAP_VIEW).legend
