#!/usr/bin/env python3
"""
Podcast Artwork Studio command line.

Usage:
  artwork-studio init "My Podcast" [--id my-podcast]
  artwork-studio import <project> <feed_url> [--policy feed|sequential|custom-start] [--start N] [--replace]
  artwork-studio template <project> [--base URL] [--set position=top-left ...]
  artwork-studio renumber <project> [--start N] [--order published|number] [--missing-only]
  artwork-studio fix-numbers <project>
  artwork-studio bonus <project> <episode> [--off]
  artwork-studio generate <project> <episode>
  artwork-studio batch <project> [--episodes ID ...] [--batch-size N]
  artwork-studio progress <project>
  artwork-studio preview <project> <episode> --out preview.png
  artwork-studio export <project> feed|urls|zip [--out PATH]

Ctrl-C during `batch` stops the run after the episode in progress.
"""

import argparse
import json
import signal
import sys
from pathlib import Path

from .batch import BatchProgress
from .constants import logger, NUMBERING_POLICIES
from .errors import ArtworkError
from .fonts import validate_fonts_at_startup
from .numbering import AUTO_NUMBER_ORDERS
from .project_store import YamlProjectStore
from .service import ArtworkStudio

EXPORT_KINDS = ('feed', 'urls', 'zip')


def _parse_style_assignments(pairs):
    changes = {}
    for pair in pairs or []:
        if '=' not in pair:
            raise ArtworkError(f"Expected field=value, got {pair!r}")
        name, value = pair.split('=', 1)
        changes[name.strip()] = value.strip()
    return changes


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='artwork-studio',
        description='Podcast Artwork Studio - numbered episode artwork from a single cover'
    )
    parser.add_argument('--store', help='Project store directory (default: ARTWORK_STORE_DIR)')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('init', help='Create a project')
    p.add_argument('name')
    p.add_argument('--id', dest='project_id')

    p = sub.add_parser('import', help='Import episodes from an RSS feed')
    p.add_argument('project')
    p.add_argument('feed_url')
    p.add_argument('--policy', choices=NUMBERING_POLICIES, default='feed')
    p.add_argument('--start', type=int, default=1, help='First number for custom-start')
    p.add_argument('--replace', action='store_true', help='Delete stored episodes first')

    p = sub.add_parser('template', help='Set base artwork and style fields')
    p.add_argument('project')
    p.add_argument('--base', help='Base artwork URL or path')
    p.add_argument('--set', nargs='*', metavar='FIELD=VALUE', default=[])

    p = sub.add_parser('renumber', help='Renumber episodes consecutively')
    p.add_argument('project')
    p.add_argument('--start', type=int, default=1)
    p.add_argument('--order', choices=AUTO_NUMBER_ORDERS, default='published')
    p.add_argument('--missing-only', action='store_true', help='Only number episodes without a number')

    p = sub.add_parser('fix-numbers', help='Overwrite numbers and seasons from the feed')
    p.add_argument('project')

    p = sub.add_parser('bonus', help='Mark an episode as bonus content')
    p.add_argument('project')
    p.add_argument('episode')
    p.add_argument('--off', action='store_true', help='Unmark instead')

    p = sub.add_parser('generate', help='Render one episode')
    p.add_argument('project')
    p.add_argument('episode')

    p = sub.add_parser('batch', help='Render many episodes')
    p.add_argument('project')
    p.add_argument('--episodes', nargs='*', help='Episode IDs (default: all)')
    p.add_argument('--batch-size', type=int, help='Episodes rendered per wave')

    p = sub.add_parser('progress', help='Show how many episodes have artwork')
    p.add_argument('project')

    p = sub.add_parser('preview', help='Write a downscaled preview PNG')
    p.add_argument('project')
    p.add_argument('episode')
    p.add_argument('--out', required=True)

    p = sub.add_parser('export', help='Export generated artwork for the podcast host')
    p.add_argument('project')
    p.add_argument('kind', choices=EXPORT_KINDS,
                   help='feed: updated RSS XML, urls: artwork URL list, zip: archive of PNGs')
    p.add_argument('--out', help='Output file (feed/urls default to stdout, zip to <project>-artwork.zip)')

    return parser


def _print_json(data) -> None:
    print(json.dumps(data, indent=2))


def _log_progress(progress: BatchProgress) -> None:
    done = progress.completed + progress.failed
    logger.info(f"BATCH_PROGRESS {done}/{progress.total} failed={progress.failed}")


def run_batch(studio: ArtworkStudio, args) -> int:
    """Run a batch with Ctrl-C wired to cancellation."""

    def handle_interrupt(signum, frame):
        logger.warning("Interrupt received, stopping after the current episode...")
        studio.cancel(args.project)

    previous = signal.signal(signal.SIGINT, handle_interrupt)
    try:
        summary = studio.generate_batch(
            args.project,
            episode_ids=args.episodes,
            batch_size=args.batch_size,
            on_progress=_log_progress,
        )
    finally:
        signal.signal(signal.SIGINT, previous)

    _print_json(summary.to_dict())
    return 0 if summary.failed == 0 else 1


def run_export(studio: ArtworkStudio, args) -> int:
    """Write an updated feed, URL list or ZIP archive."""
    if args.kind == 'zip':
        filename, data, count = studio.export_zip(args.project)
        out_path = Path(args.out or filename)
        out_path.write_bytes(data)
        _print_json({'path': str(out_path), 'files': count})
        return 0

    if args.kind == 'feed':
        updated = studio.export_feed(args.project)
        text = updated.xml
        logger.info(f"Updated feed: {updated.episodes_updated} episodes with generated artwork")
    else:
        text = studio.export_url_list(args.project)

    if args.out:
        Path(args.out).write_text(text, encoding='utf-8')
        logger.info(f"Export written to: {args.out}")
    else:
        print(text)
    return 0


def run_command(studio: ArtworkStudio, args) -> int:
    if args.command == 'init':
        _print_json(studio.store.create_project(args.name, args.project_id))
    elif args.command == 'import':
        _print_json(studio.import_feed(
            args.project,
            args.feed_url,
            policy=args.policy,
            start_number=args.start,
            replace_existing=args.replace,
        ))
    elif args.command == 'template':
        template = studio.update_template(
            args.project,
            base_artwork_url=args.base,
            **_parse_style_assignments(args.set),
        )
        _print_json(template.to_dict())
    elif args.command == 'renumber':
        if args.missing_only:
            count = studio.fill_missing_numbers(args.project)
        else:
            count = studio.auto_number(args.project, args.start, args.order)
        _print_json({'updated': count})
    elif args.command == 'fix-numbers':
        _print_json({'updated': studio.fix_numbers(args.project)})
    elif args.command == 'bonus':
        episode = studio.set_bonus(args.project, args.episode, not args.off)
        _print_json(episode.to_dict())
    elif args.command == 'generate':
        _print_json({'url': studio.generate_single(args.project, args.episode)})
    elif args.command == 'batch':
        return run_batch(studio, args)
    elif args.command == 'progress':
        _print_json(studio.get_progress(args.project))
    elif args.command == 'preview':
        out_path = Path(args.out)
        out_path.write_bytes(studio.preview(args.project, args.episode))
        logger.info(f"Preview written to: {out_path}")
    elif args.command == 'export':
        return run_export(studio, args)
    return 0


def main(argv=None) -> int:
    """Main entry point for the artwork-studio CLI"""
    args = build_parser().parse_args(argv)

    if args.command in ('generate', 'batch', 'preview'):
        validate_fonts_at_startup()

    store = YamlProjectStore(Path(args.store)) if args.store else None
    try:
        studio = ArtworkStudio(store=store)
        return run_command(studio, args)
    except ArtworkError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
