import json
import logging

import pytest

from src.core.logger.logger import JsonFormatter


@pytest.fixture(autouse=True)
def setup_logging(caplog):
    """Setup logging to capture logs in tests"""
    caplog.set_level(logging.INFO)
    yield


def request_records(caplog):
    return [record for record in caplog.records if record.getMessage() == "Request completed"]


@pytest.mark.asyncio
async def test_request_logging(client, caplog):
    """Test that API requests are logged with correlation ID"""
    correlation_id = "test-correlation-id"
    response = await client.get(
        "/api/v1/health",
        headers={"X-Request-ID": correlation_id}
    )
    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == correlation_id

    records = request_records(caplog)
    assert len(records) == 1
    record = records[0]
    assert record.request_id == correlation_id
    assert record.method == "GET"
    assert record.path == "/api/v1/health"
    assert record.status_code == 200
    assert record.duration_ms >= 0


@pytest.mark.asyncio
async def test_request_id_generated_when_missing(client, caplog):
    response = await client.get("/api/v1/scores/me")

    assert response.headers["X-Request-ID"]
    assert request_records(caplog)[0].request_id == response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_service_errors_are_logged(client, caplog):
    await client.post("/api/v1/scores/play", json={"gameId": "sudoku", "level": 1, "won": True})

    warnings = [record for record in caplog.records if record.getMessage() == "Service error: UNAUTHENTICATED"]
    assert len(warnings) == 1
    assert warnings[0].levelno == logging.WARNING
    assert warnings[0].status_code == 401

    log = json.loads(JsonFormatter().format(warnings[0]))
    assert log["error_code"] == "UNAUTHENTICATED"
    assert "context" not in log


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord("ArcadePoints", logging.INFO, __file__, 1, "Points awarded", None, None)
    record.user_id = "user-1"
    record.points_earned = 11

    log = json.loads(JsonFormatter().format(record))

    assert log["message"] == "Points awarded"
    assert log["level"] == "INFO"
    assert log["user_id"] == "user-1"
    assert log["points_earned"] == 11


def test_json_formatter_merges_json_messages():
    record = logging.LogRecord("ArcadePoints", logging.INFO, __file__, 1, '{"message": "Starting API", "version": "1.0.0"}', None, None)

    log = json.loads(JsonFormatter().format(record))

    assert log["message"] == "Starting API"
    assert log["version"] == "1.0.0"


def test_json_formatter_keeps_severity_when_extra_collides():
    """Should not let an extra field named like a base field replace it"""
    record = logging.LogRecord("ArcadePoints", logging.INFO, __file__, 1, "Points awarded", None, None)
    record.level = 3
    record.logger = "shadow"

    log = json.loads(JsonFormatter().format(record))

    assert log["level"] == "INFO"
    assert log["logger"] == "ArcadePoints"
    assert log["extra_level"] == 3
    assert log["extra_logger"] == "shadow"


@pytest.mark.asyncio
async def test_scoring_log_lines_keep_severity(client, player, auth_headers, caplog):
    await client.post(
        "/api/v1/scores/play",
        json={"gameId": "sudoku", "level": 2, "difficulty": "easy", "won": True},
        headers=auth_headers(player.user_id)
    )

    awarded = [record for record in caplog.records if record.getMessage() == "Points awarded"]
    assert len(awarded) == 1
    log = json.loads(JsonFormatter().format(awarded[0]))
    assert log["level"] == "INFO"
    assert log["game_level"] == 2
