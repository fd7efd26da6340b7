"""Client configuration for playmap."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from playmap._constants import BASE_URL
from playmap.exceptions import PlaymapConfigError


def _env_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise PlaymapConfigError(f"{name} must be a number, got {value!r}") from exc


def _env_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise PlaymapConfigError(f"{name} must be an integer, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class ClusterConfig:
    """Settings for :class:`playmap.clustering.ClusterEngine`.

    Parameters
    ----------
    radius_px : float
        Entities whose projected markers are closer than this many
        screen pixels are grouped into one cluster.
    default_width : int
        Surface width (px) assumed until the hosting view reports its size.
    default_height : int
        Surface height (px) assumed until the hosting view reports its size.
    """

    radius_px: float = 40.0
    default_width: int = 390
    default_height: int = 844


@dataclasses.dataclass(frozen=True)
class ProjectionConfig:
    """Settings for :class:`playmap.projection.DetailProjectionBuilder`."""

    meter_suffix: str = "m"
    kilometer_suffix: str = "km"
    distance_unavailable_text: str = "distance unavailable"
    category_icons: dict[str, str] = dataclasses.field(default_factory=dict)
    default_icon: str = "playground"


@dataclasses.dataclass(frozen=True)
class PlaymapConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Backend document-store REST endpoint.
    api_token : str or None
        Bearer token forwarded on every request.  Authentication itself
        happens outside this library.
    request_timeout : float
        Total timeout for a single HTTP request, in seconds.
    join_timeout : float
        Upper bound, in seconds, on how long an aggregation cycle waits for
        its per-facility fetches.  Fetches still pending are cancelled and
        reported on the result.
    max_concurrent_fetches : int or None
        Optional cap on concurrently running per-facility fetches.
        ``None`` leaves fan-out unbounded.
    cluster : ClusterConfig
        Clustering settings.
    projection : ProjectionConfig
        Detail projection settings.
    """

    base_url: str = BASE_URL
    api_token: str | None = None
    request_timeout: float = 15.0
    join_timeout: float = 20.0
    max_concurrent_fetches: int | None = None
    cluster: ClusterConfig = dataclasses.field(default_factory=ClusterConfig)
    projection: ProjectionConfig = dataclasses.field(default_factory=ProjectionConfig)

    def __post_init__(self) -> None:
        if self.join_timeout <= 0:
            raise PlaymapConfigError(f"join_timeout must be positive, got {self.join_timeout}")
        if self.request_timeout <= 0:
            raise PlaymapConfigError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.max_concurrent_fetches is not None and self.max_concurrent_fetches < 1:
            raise PlaymapConfigError(
                f"max_concurrent_fetches must be at least 1, got {self.max_concurrent_fetches}"
            )

    @classmethod
    def from_env(cls, **overrides: Any) -> PlaymapConfig:
        """Create configuration from environment variables.

        Reads ``PLAYMAP_BASE_URL``, ``PLAYMAP_API_TOKEN``,
        ``PLAYMAP_REQUEST_TIMEOUT``, ``PLAYMAP_JOIN_TIMEOUT``,
        ``PLAYMAP_MAX_CONCURRENT_FETCHES``, ``PLAYMAP_CLUSTER_RADIUS_PX``
        and ``PLAYMAP_DISTANCE_UNAVAILABLE_TEXT``.  Explicit keyword
        arguments override environment values.

        Raises
        ------
        PlaymapConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        base_url = env.get("PLAYMAP_BASE_URL")
        if base_url is not None:
            config_kwargs["base_url"] = base_url.rstrip("/")

        token = env.get("PLAYMAP_API_TOKEN")
        if token:
            config_kwargs["api_token"] = token

        request_timeout = env.get("PLAYMAP_REQUEST_TIMEOUT")
        if request_timeout is not None and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = _env_float("PLAYMAP_REQUEST_TIMEOUT", request_timeout)

        join_timeout = env.get("PLAYMAP_JOIN_TIMEOUT")
        if join_timeout is not None and "join_timeout" not in overrides:
            config_kwargs["join_timeout"] = _env_float("PLAYMAP_JOIN_TIMEOUT", join_timeout)

        max_fetches = env.get("PLAYMAP_MAX_CONCURRENT_FETCHES")
        if max_fetches and "max_concurrent_fetches" not in overrides:
            config_kwargs["max_concurrent_fetches"] = _env_int("PLAYMAP_MAX_CONCURRENT_FETCHES", max_fetches)

        # Nested component configs accept either an instance or a dict of fields.
        cluster_kwargs: dict[str, Any] = {}
        radius = env.get("PLAYMAP_CLUSTER_RADIUS_PX")
        if radius is not None:
            cluster_kwargs["radius_px"] = _env_float("PLAYMAP_CLUSTER_RADIUS_PX", radius)
        cluster_overrides = overrides.pop("cluster", None)
        if isinstance(cluster_overrides, ClusterConfig):
            cluster_kwargs = dataclasses.asdict(cluster_overrides)
        elif isinstance(cluster_overrides, dict):
            cluster_kwargs.update(cluster_overrides)
        config_kwargs["cluster"] = ClusterConfig(**cluster_kwargs)

        projection_kwargs: dict[str, Any] = {}
        unavailable = env.get("PLAYMAP_DISTANCE_UNAVAILABLE_TEXT")
        if unavailable:
            projection_kwargs["distance_unavailable_text"] = unavailable
        projection_overrides = overrides.pop("projection", None)
        if isinstance(projection_overrides, ProjectionConfig):
            projection_kwargs = dataclasses.asdict(projection_overrides)
        elif isinstance(projection_overrides, dict):
            projection_kwargs.update(projection_overrides)
        config_kwargs["projection"] = ProjectionConfig(**projection_kwargs)

        config_kwargs.update(overrides)
        return cls(**config_kwargs)
