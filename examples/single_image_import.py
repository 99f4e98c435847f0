#!/usr/bin/env python3
"""
Example: Import one standings screenshot programmatically.
Demonstrates the step-by-step flow: load, adjust crop, correct text, import.
"""
from standings_import.orchestrator import StandingsImportProcessor


def main():
    """Import a single standings image into a deck."""
    print("=" * 80)
    print("Single Standings Image Import")
    print("=" * 80)

    processor = StandingsImportProcessor(
        config_path='standings_import/configs/pipelines/default.json',
        debug=False  # Set to True for verbose logging
    )

    image_path = 'screenshots/standings.png'

    try:
        # OCR runs automatically for a newly loaded image
        rows = processor.load_image(image_path)
        print(f"\nParsed {len(rows)} rows")

        if not rows:
            # Trim the header banner and try again
            processor.set_crop({'top': 15, 'right': 0, 'bottom': 0, 'left': 0})
            rows = processor.recognize()
            print(f"Parsed {len(rows)} rows after cropping")

        for row in rows:
            print(f"  {row.rank:>3}  {row.player:<24} {row.record or '-'}")

        if rows:
            added = processor.import_rows('deck-42', deck_name='Amber Steel')
            print(f"\nImported {added} match records")

    except FileNotFoundError as e:
        print(f"Error: {e}")
        print(f"Make sure {image_path} exists")
    except Exception as e:
        print(f"Processing error: {e}")


if __name__ == '__main__':
    try:
        main()
    except KeyboardInterrupt:
        print("\nInterrupted by user")
