#!/usr/bin/env python3
"""
Main entry point for the Standings Image Import Pipeline.
Supports both CLI and programmatic usage.
"""

import sys
import argparse
from pathlib import Path

import standings_import
from standings_import.image_loader import find_images
from standings_import.models import CropSettings, PreprocessMode
from standings_import.orchestrator import StandingsImportProcessor


DEFAULT_CONFIG = str(Path(standings_import.__file__).parent / 'configs' / 'pipelines' / 'default.json')


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description='Standings Image Import Pipeline',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Import a standings screenshot into a deck
  python main.py --image shots/round5.png --deck-id deck-42 --deck-name "Amber Steel"

  # Crop 10% off the top, use colored-text binarization, only print parsed rows
  python main.py --image shots/round5.png --deck-id deck-42 --crop 10 0 0 0 --mode colored-text --dry-run

  # Import every image in a directory
  python main.py --image-dir shots/ --deck-id deck-42

  # Show or clear the stored records of a deck
  python main.py --deck-id deck-42 --list
  python main.py --deck-id deck-42 --clear
        """
    )

    parser.add_argument(
        '--image',
        type=str,
        help='Path to a single image to process'
    )
    parser.add_argument(
        '--image-dir',
        type=str,
        help='Path to directory containing images to process'
    )
    parser.add_argument(
        '--config',
        type=str,
        default=DEFAULT_CONFIG,
        help=f'Path to configuration file (default: {DEFAULT_CONFIG})'
    )
    parser.add_argument(
        '--deck-id',
        type=str,
        required=True,
        help='Deck that receives the imported match records'
    )
    parser.add_argument(
        '--deck-name',
        type=str,
        help='Deck name used in log messages'
    )
    parser.add_argument(
        '--crop',
        type=float,
        nargs=4,
        metavar=('TOP', 'RIGHT', 'BOTTOM', 'LEFT'),
        help='Crop percentages (0-40 each), overriding the config'
    )
    parser.add_argument(
        '--mode',
        choices=[m.value for m in PreprocessMode],
        help='Binarization mode, overriding the config'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Parse and print rows without storing anything'
    )
    parser.add_argument(
        '--list',
        action='store_true',
        help='Print the stored match records of the deck'
    )
    parser.add_argument(
        '--clear',
        action='store_true',
        help='Delete all stored match records of the deck'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args(argv)

    if args.image and args.image_dir:
        parser.error('Cannot specify both --image and --image-dir')

    if not (args.image or args.image_dir or args.list or args.clear):
        parser.error('One of --image, --image-dir, --list or --clear must be specified')

    if not Path(args.config).exists():
        parser.error(f'Config file not found: {args.config}')

    try:
        processor = StandingsImportProcessor(args.config, debug=args.debug)
    except Exception as e:
        print(f"Failed to initialize processor: {e}", file=sys.stderr)
        return 1

    try:
        if args.crop:
            top, right, bottom, left = args.crop
            processor.crop = CropSettings(top=top, right=right, bottom=bottom, left=left)
        if args.mode:
            processor.mode = PreprocessMode.from_value(args.mode)

        if args.clear:
            processor.match_store.clear(args.deck_id)

        if args.image:
            process_single_image(processor, args.image, args.deck_id, args.deck_name, args.dry_run)
        elif args.image_dir:
            process_image_directory(processor, args.image_dir, args.deck_id, args.deck_name, args.dry_run)

        if args.list:
            print_records(processor, args.deck_id)

    except Exception as e:
        processor.logger.error(f"Processing failed: {e}")
        return 1

    return 0


def process_single_image(
    processor: StandingsImportProcessor,
    image_path: str,
    deck_id: str,
    deck_name: str = None,
    dry_run: bool = False
) -> dict:
    """
    Process a single image.

    Args:
        processor: StandingsImportProcessor instance
        image_path: Path to image file
        deck_id: Deck that receives the records
        deck_name: Deck name for log messages
        dry_run: Parse only

    Returns:
        Summary dict from StandingsImportProcessor.process_image

    Raises:
        FileNotFoundError: If image file not found
        Exception: If processing fails
    """
    if not Path(image_path).exists():
        raise FileNotFoundError(f"Image not found: {image_path}")
    processor.logger.info(f"\nProcessing single image: {image_path}")

    results = processor.process_image(image_path, deck_id, deck_name, dry_run=dry_run)
    print_rows(results['rows'])
    if not dry_run:
        processor.logger.info(f"Stored {results['records_added']} match records for deck {deck_id}")
    return results


def process_image_directory(
    processor: StandingsImportProcessor,
    image_dir: str,
    deck_id: str,
    deck_name: str = None,
    dry_run: bool = False
) -> None:
    """
    Process all images in a directory.

    Raises:
        NotADirectoryError: If directory not found
        Exception: If processing fails (stops on first error)
    """
    image_files = find_images(image_dir)

    if not image_files:
        processor.logger.warning(f"No images found in {image_dir}")
        return

    processor.logger.info(f"Found {len(image_files)} images to process")

    for i, image_path in enumerate(image_files, 1):
        try:
            processor.logger.info(f"\n[{i}/{len(image_files)}] Processing: {image_path.name}")
            results = process_single_image(processor, str(image_path), deck_id, deck_name, dry_run)
            processor.logger.info(
                f"Success: {results['parsed_rows']} rows parsed, {results['records_added']} records added"
            )

        except Exception as e:
            processor.logger.error(f"Processing failed for {image_path.name}: {e}")
            # Stop on first error
            raise


def print_rows(rows) -> None:
    print(f"{'Rank':>4}  {'Player':<30} {'Points':>6}  Record")
    for row in rows:
        points = '' if row.points is None else row.points
        print(f"{row.rank:>4}  {row.player:<30} {points:>6}  {row.record or ''}")


def print_records(processor: StandingsImportProcessor, deck_id: str) -> None:
    records = processor.match_store.list(deck_id)
    print(f"{len(records)} match record(s) for deck {deck_id}")
    for record in records:
        print(f"  {record.date_iso}  round {record.round:<6} {record.result.label:<5} vs {record.opponent}  {record.notes or ''}")


if __name__ == '__main__':
    sys.exit(main())
