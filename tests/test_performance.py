"""
Базовые замеры времени ответа Habit Tracker API

Запуск: pytest tests/test_performance.py -v -m performance
По умолчанию исключены (addopts: -m "not performance")
"""

import time
from statistics import median, quantiles

import pytest


def _measure(call, iterations):
    response_times = []
    for _ in range(iterations):
        start = time.perf_counter()
        response = call()
        response_times.append((time.perf_counter() - start) * 1000)
        assert response.status_code < 300
    return response_times


def _report(label, response_times):
    p95 = quantiles(response_times, n=100)[94]
    print(f"\n {label}: p50 {median(response_times):.2f}ms, p95 {p95:.2f}ms")
    return p95


@pytest.mark.performance
def test_list_habits_with_tags(authenticated_client, create_tag):
    tag_ids = [create_tag()["id"] for _ in range(3)]
    for i in range(20):
        authenticated_client.post(
            "/api/habits", json={"name": f"Habit {i}", "frequency": "daily", "tagIds": tag_ids}
        )

    times = _measure(lambda: authenticated_client.get("/api/habits"), 100)

    assert _report("GET /api/habits", times) <= 200


@pytest.mark.performance
def test_create_habit(authenticated_client, create_tag):
    tag_id = create_tag()["id"]
    counter = iter(range(1000))

    def create():
        return authenticated_client.post(
            "/api/habits",
            json={"name": f"Perf {next(counter)}", "frequency": "weekly", "tagIds": [tag_id]},
        )

    times = _measure(create, 50)

    assert _report("POST /api/habits", times) <= 300


@pytest.mark.performance
def test_popular_tags(test_client, create_tag, create_habit):
    tags = [create_tag() for _ in range(15)]
    for i, tag in enumerate(tags):
        create_habit(f"Habit {i}", tagIds=[t["id"] for t in tags[: i + 1]])

    times = _measure(lambda: test_client.get("/api/tags/popular"), 100)

    assert _report("GET /api/tags/popular", times) <= 300
