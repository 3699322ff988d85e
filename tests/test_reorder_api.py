# tests/test_reorder_api.py
# PURPOSE: move up/down and bulk reorder endpoints, including every rejection path.

import random

import pytest

API = "/api/v1/tasks"


def _seed(client, *titles):
    ids = []
    for title in titles:
        r = client.post(API, json={"title": title})
        assert r.status_code == 201
        ids.append(r.json()["id"])
    return ids


def _order(client):
    return [t["id"] for t in client.get(API).json()]


def test_move_up_swaps_with_predecessor(client):
    a, b, c = _seed(client, "A", "B", "C")

    r = client.put(f"{API}/{c}/reorder", json={"direction": "up"})
    assert r.status_code == 200
    assert [t["id"] for t in r.json()] == [a, c, b]
    assert [t["position"] for t in r.json()] == [0, 1, 2]


def test_move_down_swaps_with_successor(client):
    a, b, c = _seed(client, "A", "B", "C")

    r = client.put(f"{API}/{a}/reorder", json={"direction": "down"})
    assert r.status_code == 200
    assert [t["id"] for t in r.json()] == [b, a, c]


def test_move_up_then_down_restores_order(client):
    ids = _seed(client, "A", "B", "C", "D")

    client.put(f"{API}/{ids[2]}/reorder", json={"direction": "up"})
    client.put(f"{API}/{ids[2]}/reorder", json={"direction": "down"})
    assert _order(client) == ids


def test_move_across_position_gaps(client):
    a, b, c = _seed(client, "A", "B", "C")
    client.delete(f"{API}/{b}")

    r = client.put(f"{API}/{c}/reorder", json={"direction": "up"})
    assert r.status_code == 200
    body = r.json()
    assert [t["id"] for t in body] == [c, a]
    assert [t["position"] for t in body] == [0, 2]


@pytest.mark.parametrize("direction, index", [("up", 0), ("down", -1)])
def test_move_at_boundary_is_rejected(client, direction, index):
    ids = _seed(client, "A", "B", "C")

    r = client.put(f"{API}/{ids[index]}/reorder", json={"direction": direction})
    assert r.status_code == 400
    assert r.json()["code"] == "AlreadyAtBoundary"
    assert _order(client) == ids


def test_move_unknown_task_is_404(client):
    _seed(client, "A")
    r = client.put(f"{API}/999/reorder", json={"direction": "up"})
    assert r.status_code == 404
    assert r.json()["code"] == "NotFound"


@pytest.mark.parametrize("body", [{"direction": "left"}, {}, None, ["up"], {"direction": 1}])
def test_move_invalid_direction_is_400(client, body):
    (a,) = _seed(client, "A")
    r = client.put(f"{API}/{a}/reorder", json=body)
    assert r.status_code == 400
    assert r.json()["code"] == "InvalidInput"


def test_move_invalid_id_is_400(client):
    r = client.put(f"{API}/abc/reorder", json={"direction": "up"})
    assert r.status_code == 400


def test_bulk_reorder_applies_new_order(client):
    a, b, c = _seed(client, "A", "B", "C")

    r = client.put(
        f"{API}/reorder",
        json={"taskOrders": [{"id": c, "position": 0}, {"id": a, "position": 1}, {"id": b, "position": 2}]},
    )
    assert r.status_code == 200
    assert [t["id"] for t in r.json()] == [c, a, b]


def test_bulk_reorder_ignores_unknown_ids(client):
    a, b = _seed(client, "A", "B")

    r = client.put(
        f"{API}/reorder",
        json={"taskOrders": [{"id": b, "position": 0}, {"id": 999, "position": 1}, {"id": a, "position": 2}]},
    )
    assert r.status_code == 200
    body = r.json()
    assert [t["id"] for t in body] == [b, a]
    assert [t["position"] for t in body] == [0, 2]


def test_bulk_reorder_accepts_integral_floats(client):
    a, b = _seed(client, "A", "B")
    r = client.put(
        f"{API}/reorder",
        json={"taskOrders": [{"id": a, "position": 1.0}, {"id": b, "position": 0}]},
    )
    assert r.status_code == 200
    assert [t["id"] for t in r.json()] == [b, a]


@pytest.mark.parametrize(
    "body",
    [
        None,
        {},
        {"taskOrders": None},
        {"taskOrders": "1,2"},
        {"taskOrders": []},
        {"taskOrders": [{"id": 1}]},
        {"taskOrders": [{"position": 0}]},
        {"taskOrders": [{"id": "1", "position": 0}]},
        {"taskOrders": [{"id": 1, "position": True}]},
        {"taskOrders": [{"id": 1, "position": 0.5}]},
        {"taskOrders": [5]},
    ],
)
def test_bulk_reorder_rejects_malformed_body(client, body):
    ids = _seed(client, "A", "B")
    r = client.put(f"{API}/reorder", json=body)
    assert r.status_code == 400
    assert r.json()["code"] == "InvalidInput"
    assert _order(client) == ids


@pytest.mark.parametrize("raw", [b"{not json", b'{"taskOrders": [', b"\xff\xfe"])
def test_reorder_routes_reject_invalid_json_with_400(client, raw):
    ids = _seed(client, "A", "B")
    headers = {"content-type": "application/json"}

    for url in (f"{API}/reorder", f"{API}/{ids[1]}/reorder"):
        r = client.put(url, content=raw, headers=headers)
        assert r.status_code == 400
        assert r.json()["code"] == "InvalidInput"
    assert _order(client) == ids


def test_bulk_reorder_is_not_shadowed_by_task_routes(client):
    # "/tasks/reorder" must never be treated as PUT /tasks/{id}
    r = client.put(f"{API}/reorder", json={"title": "nope"})
    assert r.status_code == 400


def test_total_order_survives_random_operations(client):
    ids = _seed(client, *"ABCDEF")
    rng = random.Random(7)

    for _ in range(25):
        if rng.random() < 0.7:
            tid = rng.choice(ids)
            client.put(f"{API}/{tid}/reorder", json={"direction": rng.choice(["up", "down"])})
        else:
            shuffled = ids[:]
            rng.shuffle(shuffled)
            orders = [{"id": tid, "position": pos * 10} for pos, tid in enumerate(shuffled)]
            client.put(f"{API}/reorder", json={"taskOrders": orders})

        tasks = client.get(API).json()
        order = [t["id"] for t in tasks]
        assert sorted(order) == sorted(ids)
        positions = [t["position"] for t in tasks]
        assert positions == sorted(positions)
        assert len(set(positions)) == len(positions)
