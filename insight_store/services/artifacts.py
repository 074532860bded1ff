"""
Factory functions that turn already-fetched analysis data into vault Artifacts.

Producers call these after a successful fetch and hand the result to
`ArtifactVault.upsert`. Channel and video snapshots use stable ids, so saving the
same subject again replaces the earlier snapshot; report-style artifacts get a
timestamp suffix so every run is kept separately.
"""

from datetime import datetime
from typing import Any
from urllib.parse import quote_plus

from insight_store.models.records import Artifact, ArtifactKind, SearchMode, utc_now

YOUTUBE_URL = "https://www.youtube.com"
TRENDS_URL = "https://trends.google.com/trends/trendingsearches/daily"

TREND_GEO_CODES = {"korea": "KR", "south korea": "KR", "kr": "KR"}


def _run_suffix(now: datetime | None) -> int:
    return int((now or utc_now()).timestamp() * 1000)


def _search_url(query: str) -> str:
    return f"{YOUTUBE_URL}/results?search_query={quote_plus(query)}"


def channel_artifact(data: dict[str, Any]) -> Artifact:
    return Artifact(
        id=f"channel_{data['id']}",
        kind=ArtifactKind.CHANNEL,
        title=data["name"],
        thumbnail_ref=data.get("thumbnailUrl"),
        metric_primary=f"Subscribers {data.get('subscriberCount', 0):,}",
        metric_secondary=f"Videos {data.get('totalVideos', 0):,}",
        external_url=f"{YOUTUBE_URL}/channel/{data['id']}",
        payload=data,
    )


def video_artifact(data: dict[str, Any]) -> Artifact:
    return Artifact(
        id=f"video_{data['id']}",
        kind=ArtifactKind.VIDEO,
        title=data["title"],
        thumbnail_ref=data.get("thumbnailUrl"),
        metric_primary=f"Views {data.get('viewCount', 0):,}",
        metric_secondary=f"Likes {data.get('likeCount', 0):,}",
        external_url=f"{YOUTUBE_URL}/watch?v={data['id']}",
        payload=data,
    )


def outlier_artifact(
    query: str,
    mode: SearchMode,
    videos: list[dict[str, Any]],
    multiplier: float,
    now: datetime | None = None,
) -> Artifact:
    """Snapshot of an outlier analysis run over the videos found for `query`."""
    if mode is SearchMode.CHANNEL:
        url = f"{YOUTUBE_URL}/search?q={quote_plus(query)}"
    else:
        url = _search_url(query)
    return Artifact(
        id=f"outlier_{query}_{_run_suffix(now)}",
        kind=ArtifactKind.OUTLIER,
        title=f"'{query}' outlier report",
        thumbnail_ref=videos[0].get("thumbnailUrl") if videos else None,
        metric_primary=f"{len(videos)} videos analyzed",
        metric_secondary=f"Multiplier {multiplier}x",
        external_url=url,
        payload={"query": query, "mode": mode.value, "videos": videos, "multiplier": multiplier},
    )


def thumbnail_strategy_artifact(
    query: str, insights: dict[str, Any], now: datetime | None = None
) -> Artifact:
    return Artifact(
        id=f"thumb_{query}_{_run_suffix(now)}",
        kind=ArtifactKind.THUMBNAIL_STRATEGY,
        title=f"'{query}' thumbnail and title strategy",
        metric_primary="AI scoring complete",
        metric_secondary="Optimization strategy ready",
        external_url=_search_url(query),
        payload={"query": query, "insights": insights},
    )


def algorithm_diagnosis_artifact(result: dict[str, Any], now: datetime | None = None) -> Artifact:
    profile = result.get("profile", {})
    keyword = profile.get("keyword", "")
    return Artifact(
        id=f"algo_{keyword}_{_run_suffix(now)}",
        kind=ArtifactKind.ALGORITHM_DIAGNOSIS,
        title=f"DNA diagnosis: {keyword} ({profile.get('category', 'unknown')})",
        metric_primary=f"Fit score {result.get('score', 0)}",
        metric_secondary=result.get("statusMessage", ""),
        payload=result,
    )


def my_channel_artifact(data: dict[str, Any], now: datetime | None = None) -> Artifact:
    kpi = data.get("kpi", {})
    return Artifact(
        id=f"my_{data['name']}_{_run_suffix(now)}",
        kind=ArtifactKind.MY_CHANNEL,
        title=f"My channel diagnosis: {data['name']}",
        thumbnail_ref=data.get("thumbnailUrl"),
        metric_primary=f"Monthly views {kpi.get('viewsLast30d', 0):,}",
        metric_secondary=f"CTR {kpi.get('ctrLast30d', 0)}%",
        payload=data,
    )


def trend_artifact(
    country: str,
    youtube: list[Any],
    google: list[Any],
    summary: str,
    now: datetime | None = None,
) -> Artifact:
    geo = TREND_GEO_CODES.get(country.strip().lower(), "US")
    return Artifact(
        id=f"trend_{country}_{_run_suffix(now)}",
        kind=ArtifactKind.TREND,
        title=f"{country} live trend report",
        metric_primary=f"{len(youtube)} YouTube keywords",
        metric_secondary=f"{len(google)} Google keywords",
        external_url=f"{TRENDS_URL}?geo={geo}",
        payload={"country": country, "youtube": youtube, "google": google, "summary": summary},
    )
