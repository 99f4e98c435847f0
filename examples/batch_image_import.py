#!/usr/bin/env python3
"""
Example: Import every standings screenshot in a directory.
"""
from pathlib import Path
from standings_import.orchestrator import StandingsImportProcessor
from main import process_image_directory


def main():
    """Import all images from a directory into one deck."""
    print("=" * 80)
    print("Batch Standings Import")
    print("=" * 80)

    processor = StandingsImportProcessor(
        config_path='standings_import/configs/pipelines/default.json',
        debug=False
    )

    image_dir = Path('screenshots')

    # Stops on the first image that fails
    process_image_directory(processor, str(image_dir), deck_id='deck-42', deck_name='Amber Steel')

    records = processor.match_store.list('deck-42')
    print(f"\nDeck now holds {len(records)} match records")


if __name__ == '__main__':
    try:
        main()
    except KeyboardInterrupt:
        print("\nInterrupted by user")
    except Exception as e:
        print(f"Error: {e}")
