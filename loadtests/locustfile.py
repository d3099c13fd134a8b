"""Locust scenarios for sign-and-redirect throughput."""

from __future__ import annotations

import os
import random
from dataclasses import dataclass, field

from locust import HttpUser, between, events, task


def _env_float(name: str, default: float) -> float:
    """Read a float environment variable with fallback."""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    """Read a comma-separated environment variable."""
    value = os.environ.get(name)
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class LoadSettings:
    """Runtime settings for load-test behavior."""

    space_id: str
    asset_paths: list[str] = field(default_factory=list)
    max_failure_rate_pct: float = 0.1


SETTINGS = LoadSettings(
    space_id=os.environ.get("ASSET_LOAD_SPACE_ID", "sp1"),
    asset_paths=_env_list("ASSET_LOAD_PATHS", ["abc/def/photo.jpg", "ghi/jkl/report.pdf"]),
    max_failure_rate_pct=_env_float("ASSET_LOAD_MAX_FAILURE_RATE_PCT", 0.1),
)


def _has_signature(location: str) -> bool:
    """Check that a redirect target carries both signing parameters."""
    return "token=" in location and "policy=" in location


class ImageRedirectUser(HttpUser):
    """Image requests with transformation parameters, the common proxy workload."""

    wait_time = between(0.01, 0.1)
    weight = 3

    @task
    def fetch_image(self) -> None:
        """Request a resized image and expect a signed redirect."""
        path = random.choice(SETTINGS.asset_paths)
        width = random.choice([100, 200, 400, 800])
        with self.client.get(
            f"/images/{SETTINGS.space_id}/{path}?w={width}",
            name="GET /images/{space_id}/{asset_path}",
            allow_redirects=False,
            catch_response=True,
        ) as response:
            if response.status_code == 302 and _has_signature(response.headers.get("location", "")):
                response.success()
                return
            response.failure(f"unexpected status={response.status_code}")


class DownloadRedirectUser(HttpUser):
    """Plain file downloads without query parameters."""

    wait_time = between(0.05, 0.2)
    weight = 1

    @task
    def fetch_download(self) -> None:
        """Request a download and expect a signed redirect."""
        path = random.choice(SETTINGS.asset_paths)
        with self.client.get(
            f"/downloads/{SETTINGS.space_id}/{path}",
            name="GET /downloads/{space_id}/{asset_path}",
            allow_redirects=False,
            catch_response=True,
        ) as response:
            if response.status_code == 302 and _has_signature(response.headers.get("location", "")):
                response.success()
                return
            response.failure(f"unexpected status={response.status_code}")


@events.quitting.add_listener
def _on_quitting(environment, **_kwargs) -> None:
    """Fail the run when the error rate exceeds the configured ceiling."""
    failure_rate_pct = environment.stats.total.fail_ratio * 100.0
    if SETTINGS.max_failure_rate_pct >= 0 and failure_rate_pct > SETTINGS.max_failure_rate_pct:
        print(
            f"[loadtest] failure rate {failure_rate_pct:.3f}% exceeded "
            f"max {SETTINGS.max_failure_rate_pct:.3f}%"
        )
        environment.process_exit_code = 1
