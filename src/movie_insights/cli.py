import argparse
import asyncio
import logging
import sys

from .config import (
    DATA_DIR,
    DEFAULT_MOOD_LIMIT,
    DEFAULT_RECOMMEND_LIMIT,
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_TAG_CLOUD_LIMIT,
    TAG_CLOUD_MIN_ITEMS,
    TAG_CLOUD_RATING_RANGE,
    TAG_CLOUD_YEAR_RANGE,
)
from .dataset import load_dataset
from .engine import InsightsEngine
from .mood import MOOD_PROFILES, get_mood
from .posters import PosterClient
from .tag_cloud import TagCloudFilters, tag_cloud_stats

logger = logging.getLogger(__name__)


def _parse_range(value: str, cast=float) -> tuple:
    """
    Parse "LOW-HIGH" (or "LOW:HIGH") into a tuple.
    Raises argparse.ArgumentTypeError for malformed or inverted ranges.
    """
    separator = ":" if ":" in value else "-"
    parts = value.split(separator)
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"Expected LOW-HIGH, got '{value}'")
    try:
        low, high = cast(parts[0].strip()), cast(parts[1].strip())
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid range bounds in '{value}'")
    if low > high:
        raise argparse.ArgumentTypeError(f"Range lower bound exceeds upper bound in '{value}'")
    return low, high


def _positive_int(value: str) -> int:
    """
    Parse a strictly positive integer for limits and thresholds.
    Raises argparse.ArgumentTypeError otherwise.
    """
    try:
        parsed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got '{value}'")
    if parsed < 1:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got {parsed}")
    return parsed


def _year_range(value: str) -> tuple:
    return _parse_range(value, cast=int)


def _rating_range(value: str) -> tuple:
    return _parse_range(value, cast=float)


def _load_engine(args: argparse.Namespace) -> InsightsEngine:
    dataset = load_dataset(args.data_dir, progress=True)
    return InsightsEngine(dataset)


def _title(engine: InsightsEngine, item_id: str) -> str:
    item = engine.dataset.item(item_id) if engine.dataset else None
    return item.title if item else item_id


def cmd_search(args: argparse.Namespace) -> int:
    """Find item ids by title substring and genre."""
    engine = _load_engine(args)
    items = engine.search(args.query or "", genres=args.genres or (), limit=args.limit)
    if not items:
        logger.info("No matching items")
        return 0

    for item in items:
        logger.info(f"  {item.id:>8}  {item.title}  [{', '.join(item.genres)}]")
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    """Show rating statistics for one item."""
    engine = _load_engine(args)
    stats = engine.item_stats(args.item_id)
    if stats is None:
        logger.error(f"Unknown item id '{args.item_id}'")
        return 1

    logger.info(f"\n{_title(engine, args.item_id)}")
    logger.info(f"  Ratings: {stats.count}")
    logger.info(f"  Average: {stats.average}  Median: {stats.median}  Variance: {stats.variance:.2f}")

    if stats.distribution:
        logger.info("\nDistribution:")
        for bucket in stats.distribution:
            logger.info(f"  {bucket.value:>3}: {'#' * min(bucket.count, 60)} {bucket.count}")

    if stats.recent:
        logger.info("\nRecent ratings:")
        for recent in stats.recent:
            logger.info(f"  {recent.date}  user {recent.user_id}: {recent.value}")

    link = engine.link(args.item_id)
    if link and link.imdb_url:
        logger.info(f"\nIMDb: {link.imdb_url}")
    return 0


def cmd_timeline(args: argparse.Namespace) -> int:
    """Show the monthly rating timeline for one item."""
    engine = _load_engine(args)
    points = engine.timeline(args.item_id)
    if not points:
        logger.info(f"No dated ratings for '{args.item_id}'")
        return 0

    logger.info(f"\n{_title(engine, args.item_id)} - monthly ratings")
    for point in points:
        logger.info(
            f"  {point.month}  mean {point.rating:.2f}  n={point.count:<4} "
            f"moving avg {point.moving_average:.2f}"
        )
    return 0


def cmd_tags(args: argparse.Namespace) -> int:
    """Show user tags applied to one item."""
    engine = _load_engine(args)
    tags = engine.item_tags(args.item_id)
    if tags is None:
        logger.error(f"Unknown item id '{args.item_id}'")
        return 1

    logger.info(f"\n{_title(engine, args.item_id)} - {tags.total_tags} tags")
    for entry in tags.tags[:args.limit]:
        logger.info(f"  {entry.tag}: {entry.count}")
    return 0


def cmd_recommend(args: argparse.Namespace) -> int:
    """Recommend items similar to the given ones."""
    engine = _load_engine(args)
    unknown = [i for i in args.item_ids if engine.dataset.item(i) is None]
    for item_id in unknown:
        logger.warning(f"Ignoring unknown item id '{item_id}'")
    if len(unknown) == len(args.item_ids):
        logger.error("None of the given item ids exist in the dataset")
        return 1

    recs = engine.recommend(args.item_ids, limit=args.limit)
    if not recs:
        logger.info("No recommendations above the minimum score")
        return 0

    logger.info(f"\nBecause you liked {', '.join(_title(engine, i) for i in args.item_ids if i not in unknown)}:")
    for rec in recs:
        logger.info(f"{rec.rank:>3}. {rec.item.title} ({rec.match_percentage}% match)")
        logger.info(
            f"      genre {rec.genre_match:.2f} | collaborative {rec.collaborative_score:.2f} | tags {rec.tag_match:.2f}"
        )
        for reason in rec.reasons:
            logger.info(f"      - {reason}")
    return 0


def cmd_moods(args: argparse.Namespace) -> int:
    """List the available moods."""
    for mood in MOOD_PROFILES.values():
        logger.info(f"  {mood.id:<18} {mood.emoji} {mood.name}: {mood.description}")
    return 0


def cmd_mood(args: argparse.Namespace) -> int:
    """Rank items matching a mood."""
    mood = get_mood(args.mood)
    if mood is None:
        logger.error(f"Unknown mood '{args.mood}'. Available: {', '.join(MOOD_PROFILES)}")
        return 1

    engine = _load_engine(args)
    matches = engine.mood_matches(mood.id, limit=args.limit)
    logger.info(f"\n{mood.emoji} {mood.name} - {len(matches)} matches")
    for match in matches:
        logger.info(f"{match.rank:>3}. {match.item.title} (mood score {match.mood_score})")
        for reason in match.reasons:
            logger.info(f"      - {reason}")
    return 0


def cmd_compare(args: argparse.Namespace) -> int:
    """Cross-recommendation analysis for two items."""
    engine = _load_engine(args)
    result = engine.cross_recommendation(args.first, args.second)
    if result is None:
        logger.error("Select two different, existing item ids to compare")
        return 1

    logger.info(f"\n{result.first.item.title}  vs  {result.second.item.title}")
    logger.info(f"  Recommendation confidence: {result.confidence}% ({result.verdict_label})")
    logger.info(f"  User overlap: {result.user_overlap}% ({result.shared_users} shared fans)")
    logger.info(f"  Genre match: {result.genre_match}%")
    logger.info(f"  Tag similarity: {result.tag_similarity}%")
    if result.common_appeal:
        logger.info("  Common appeal:")
        for appeal in result.common_appeal:
            logger.info(f"    - {appeal}")
    return 0


def cmd_tag_cloud(args: argparse.Namespace) -> int:
    """Aggregate tags over a filtered slice of the corpus."""
    engine = _load_engine(args)
    filters = TagCloudFilters(
        genres=frozenset(args.genres or ()),
        year_range=args.years,
        rating_range=args.ratings,
        min_items=args.min_items,
    )
    entries = engine.tag_cloud(filters, limit=args.limit)
    stats = tag_cloud_stats(entries)

    logger.info(
        f"\n{stats.total_tags} tags, {stats.total_occurrences} applications, "
        f"average rating {stats.average_rating:.2f}"
    )
    if stats.top_tag:
        logger.info(f"Most popular: {stats.top_tag.tag} ({stats.top_tag.count})")
    for entry in entries:
        logger.info(
            f"  {entry.tag:<30} {entry.count:>5}  avg {entry.average_rating:.2f}  items {len(entry.item_ids)}"
        )
    return 0


def cmd_poster(args: argparse.Namespace) -> int:
    """Look up the poster URL for an item via its TMDB link."""
    engine = _load_engine(args)
    link = engine.link(args.item_id)
    if link is None or not link.tmdb_id:
        logger.error(f"No TMDB id known for '{args.item_id}'")
        return 1

    async def _fetch():
        async with PosterClient() as client:
            return await client.fetch_poster_url(link.tmdb_id)

    url = asyncio.run(_fetch())
    if url:
        logger.info(url)
    else:
        logger.info("No poster available")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Movie rating and tag analytics")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--data-dir", default=str(DATA_DIR), help="Directory with movies/ratings/tags/links CSVs")
    subparsers = parser.add_subparsers(dest="command", required=True)

    search_parser = subparsers.add_parser("search", help="Find items by title and genre")
    search_parser.add_argument("query", nargs="?", default="", help="Case-insensitive title substring")
    search_parser.add_argument("--genres", nargs="+", help="Keep items with any of these genres")
    search_parser.add_argument("--limit", type=_positive_int, default=DEFAULT_SEARCH_LIMIT, help="Number of items")
    search_parser.set_defaults(func=cmd_search)

    stats_parser = subparsers.add_parser("stats", help="Rating statistics for an item")
    stats_parser.add_argument("item_id", help="Item (movie) id")
    stats_parser.set_defaults(func=cmd_stats)

    timeline_parser = subparsers.add_parser("timeline", help="Monthly rating timeline for an item")
    timeline_parser.add_argument("item_id", help="Item (movie) id")
    timeline_parser.set_defaults(func=cmd_timeline)

    tags_parser = subparsers.add_parser("tags", help="User tags applied to an item")
    tags_parser.add_argument("item_id", help="Item (movie) id")
    tags_parser.add_argument("--limit", type=_positive_int, default=25, help="Number of tags to show")
    tags_parser.set_defaults(func=cmd_tags)

    rec_parser = subparsers.add_parser("recommend", help="Recommend items similar to the given ones")
    rec_parser.add_argument("item_ids", nargs="+", help="Ids of liked items")
    rec_parser.add_argument("--limit", type=_positive_int, default=DEFAULT_RECOMMEND_LIMIT, help="Number of recommendations")
    rec_parser.set_defaults(func=cmd_recommend)

    moods_parser = subparsers.add_parser("moods", help="List available moods")
    moods_parser.set_defaults(func=cmd_moods)

    mood_parser = subparsers.add_parser("mood", help="Find items matching a mood")
    mood_parser.add_argument("mood", help=f"One of: {', '.join(MOOD_PROFILES)}")
    mood_parser.add_argument("--limit", type=_positive_int, default=DEFAULT_MOOD_LIMIT, help="Number of matches")
    mood_parser.set_defaults(func=cmd_mood)

    compare_parser = subparsers.add_parser("compare", help="Cross-recommendation analysis for two items")
    compare_parser.add_argument("first", help="First item id")
    compare_parser.add_argument("second", help="Second item id")
    compare_parser.set_defaults(func=cmd_compare)

    cloud_parser = subparsers.add_parser("tag-cloud", help="Tag frequencies over filtered items")
    cloud_parser.add_argument("--genres", nargs="+", help="Keep items with any of these genres")
    cloud_parser.add_argument("--years", type=_year_range, default=TAG_CLOUD_YEAR_RANGE,
                              help="Release year range, e.g. 1990-2000")
    cloud_parser.add_argument("--ratings", type=_rating_range, default=TAG_CLOUD_RATING_RANGE,
                              help="Average rating range, e.g. 3.5-5")
    cloud_parser.add_argument("--min-items", type=_positive_int, default=TAG_CLOUD_MIN_ITEMS,
                              help="Minimum distinct items per tag")
    cloud_parser.add_argument("--limit", type=_positive_int, default=DEFAULT_TAG_CLOUD_LIMIT, help="Number of tags")
    cloud_parser.set_defaults(func=cmd_tag_cloud)

    poster_parser = subparsers.add_parser("poster", help="Poster URL for an item (needs TMDB_API_KEY)")
    poster_parser.add_argument("item_id", help="Item (movie) id")
    poster_parser.set_defaults(func=cmd_poster)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging based on verbosity
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        return args.func(args) or 0
    except FileNotFoundError as exc:
        logger.error(f"{exc}. Set MOVIE_INSIGHTS_DATA or pass --data-dir.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
