"""Tests for the jobs CLI sub-commands."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from autopersona.cli.job_commands import app
from autopersona.queue.models import JobKind, JobSpec

runner = CliRunner()


@pytest.fixture
def queue(work_queue):
    with patch("autopersona.cli.job_commands._get_queue", return_value=work_queue):
        yield work_queue


def _enqueue(queue, n: int = 1, **kwargs) -> list[str]:
    data = {"owner_id": "u1", "kind": JobKind.CHARACTER, "payload": {"profile_type": "chef"}}
    data.update(kwargs)
    return queue.enqueue_batch([JobSpec(**data) for _ in range(n)])


def test_list_empty(queue):
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    assert "No jobs found." in result.output


def test_list_shows_jobs_and_counts(queue):
    _enqueue(queue, 2)
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    assert "pending" in result.output
    assert "Queue: 2 pending, 0 generating, 0 completed, 0 failed." in result.output


def test_list_filters_by_status(queue):
    ids = _enqueue(queue, 2)
    queue.claim(ids[0])
    result = runner.invoke(app, ["list", "--status", "generating"])
    assert result.exit_code == 0
    assert ids[0] in result.output
    assert ids[1] not in result.output


def test_list_unknown_status(queue):
    result = runner.invoke(app, ["list", "--status", "exploded"])
    assert result.exit_code == 1
    assert "Unknown status" in result.output


def test_show_job(queue):
    (job_id,) = _enqueue(queue, schedule_id="sched-1")
    queue.claim(job_id)
    queue.mark_failed(job_id, "LLM unavailable", step_errors=["Image 1: boom"])

    result = runner.invoke(app, ["show", job_id])

    assert result.exit_code == 0
    assert f"Job {job_id}" in result.output
    assert "failed" in result.output
    assert "sched-1" in result.output
    assert "Error: LLM unavailable" in result.output
    assert "- Image 1: boom" in result.output
    assert "profile_type: chef" in result.output


def test_show_missing(queue):
    result = runner.invoke(app, ["show", "nope"])
    assert result.exit_code == 1
    assert "not found" in result.output
