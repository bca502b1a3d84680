#!/usr/bin/env python3
"""Sample upload generation script.

Generates synthetic product spreadsheets in the upload format:
- Row 1: Title row (ignored)
- Row 2: Header row (ignored)
- Row 3+: One product per row, columns A..F
  (product number, name, hashtags, keywords, image link, sales status)

Useful for exercising the multi-file record ceiling (3000 rows) by hand:
    python scripts/gen_sample_uploads.py data/ --files 4 --rows 1000
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np
import pandas as pd

HEADER = ["No.", "Product name", "Hashtags", "Keywords", "Main image", "Sales status"]

NOUNS = ["Mug", "Lamp", "Chair", "Backpack", "Kettle", "Notebook", "Towel", "Pan"]
ADJECTIVES = ["Blue", "Compact", "Vintage", "Steel", "Organic", "Foldable"]
KEYWORDS = ["kitchen", "office", "outdoor", "gift", "travel", "home", "eco", "kids"]
STATUSES = ["On Sale", "Sold Out", "Pre-order", ""]
DELIMITERS = [", ", ";", "|", "\n"]


def generate_products(rows: int, start_number: int = 1, seed: int = 42, invalid_every: int = 0) -> list[list[object]]:
    """Generate product rows (data rows only).

    Args:
        rows: Number of product rows
        start_number: Product number of the first row
        seed: Random seed for reproducible data
        invalid_every: Every N-th row gets an invalid image link (0 = never)
    """
    rng = np.random.default_rng(seed)
    products: list[list[object]] = []
    for i in range(rows):
        number = start_number + i
        name = f"{rng.choice(ADJECTIVES)} {rng.choice(NOUNS)} {number}"
        delimiter = str(rng.choice(DELIMITERS))
        keywords = delimiter.join(rng.choice(KEYWORDS, size=int(rng.integers(1, 4)), replace=False))
        hashtags = " | ".join(f"#{k}" for k in rng.choice(KEYWORDS, size=2, replace=False))
        link = f"https://img.example.com/{number}.jpg"
        if invalid_every and (i + 1) % invalid_every == 0:
            link = f"img.example.com/{number}.jpg"
        products.append([number, name, hashtags, keywords, link, str(rng.choice(STATUSES))])
    return products


def create_upload_file(
    output_path: Path,
    rows: int,
    start_number: int = 1,
    title: str = "Product upload",
    seed: int = 42,
    invalid_every: int = 0,
) -> None:
    """Create one .xlsx upload (title row + header row + product rows)."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    sheet = [[title] + [""] * (len(HEADER) - 1), HEADER]
    sheet.extend(generate_products(rows, start_number, seed, invalid_every))
    with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
        pd.DataFrame(sheet).to_excel(writer, sheet_name="Products", header=False, index=False)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate synthetic product upload spreadsheets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # 3 files x 500 rows
  %(prog)s data/ --files 3 --rows 500

  # exceed the 3000 record ceiling
  %(prog)s data/ --files 4 --rows 1000

  # every 50th row with an invalid image link
  %(prog)s data/ --rows 200 --invalid-every 50
        """,
    )
    parser.add_argument("output_dir", type=Path, help="Directory for the generated .xlsx files")
    parser.add_argument("--files", type=int, default=1, help="Number of files (default: 1)")
    parser.add_argument("--rows", type=int, default=100, help="Product rows per file (default: 100)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument("--invalid-every", type=int, default=0, help="Every N-th row gets an invalid link")
    args = parser.parse_args()

    if args.files < 1 or args.rows < 0:
        print("Error: --files must be >= 1 and --rows >= 0", file=sys.stderr)
        return 1

    for n in range(args.files):
        path = args.output_dir / f"products_{n + 1:02d}.xlsx"
        create_upload_file(
            path,
            rows=args.rows,
            start_number=n * args.rows + 1,
            seed=args.seed + n,
            invalid_every=args.invalid_every,
        )
        print(f"Created {path} ({args.rows} rows)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
