"""
Performance demonstration for the coloring core.

Times the two operations a user waits on: converting a photo to line art at
the working size, and flood filling a large region of a page. Run this
script to see how they behave on your system.

Install dependencies:
    pip install pillow numpy scipy
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import time

import numpy as np
from PIL import Image, ImageDraw

from CB_Libs.FillLib.flood_fill import WallMap, create_empty_color_layer, flood_fill
from CB_Libs.LineArtLib.line_art_preprocessor import LineArtConfig, preprocess_image
from CB_Libs.RasterLib.raster_buffer import RasterBuffer


def make_photo(size):
    """Synthetic photo: gradient background with a few shapes."""
    ramp = np.linspace(60, 220, size, dtype=np.uint8)
    pixels = np.stack([np.tile(ramp, (size, 1))] * 3, axis=-1)
    photo = Image.fromarray(pixels)
    draw = ImageDraw.Draw(photo)
    draw.ellipse([size // 5, size // 5, size // 2, size // 2], fill=(30, 30, 30))
    draw.rectangle([size // 2, size // 2, size * 4 // 5, size * 4 // 5], fill=(240, 240, 240))
    return photo


def make_outline(size):
    """Outline page with one large closed square."""
    image = Image.new("RGBA", (size, size), (255, 255, 255, 255))
    draw = ImageDraw.Draw(image)
    margin = size // 10
    draw.rectangle([margin, margin, size - margin, size - margin], outline=(0, 0, 0, 255), width=3)
    return RasterBuffer.from_image(image)


def benchmark_preprocess(size, working_size, iterations=3):
    """Benchmark photo to line art conversion."""
    print(f"\nPreprocessing {size}x{size} photo at working size {working_size}")
    print("-" * 60)

    photo = make_photo(size)
    config = LineArtConfig(working_size=working_size)

    times = []
    for i in range(iterations):
        start = time.time()
        preprocess_image(photo, 50, config)
        elapsed = time.time() - start
        times.append(elapsed)
        suffix = " (warmup)" if i == 0 else ""
        print(f"  Run {i+1}: {elapsed:.3f}s{suffix}")

    avg = sum(times[1:]) / len(times[1:])
    print(f"Average (excluding warmup): {avg:.3f}s")
    return avg


def benchmark_fill(size, iterations=3):
    """Benchmark filling the inside of a large square."""
    print(f"\nFilling {size}x{size} page")
    print("-" * 60)

    outline = make_outline(size)
    walls = WallMap(outline)

    times = []
    pixel_count = 0
    for i in range(iterations):
        color_layer = create_empty_color_layer(size, size)
        start = time.time()
        diff = flood_fill(color_layer, outline, size // 2, size // 2, (255, 0, 0, 255), wall_map=walls)
        elapsed = time.time() - start
        times.append(elapsed)
        pixel_count = len(diff)
        print(f"  Run {i+1}: {elapsed:.3f}s ({pixel_count} pixels)")

    avg = sum(times) / len(times)
    print(f"Average: {avg:.3f}s")
    return avg, pixel_count


def main():
    """Run performance benchmarks."""
    print("=" * 60)
    print("Coloring Core Performance Demonstration")
    print("=" * 60)

    preprocess_results = []
    for size, working_size in [(1024, 512), (2048, 1024), (3000, 2048)]:
        try:
            preprocess_results.append((size, working_size, benchmark_preprocess(size, working_size)))
        except KeyboardInterrupt:
            print("\n\nBenchmark interrupted by user")
            break

    fill_results = []
    for size in [512, 1024, 2048]:
        try:
            avg, pixel_count = benchmark_fill(size)
            fill_results.append((size, pixel_count, avg))
        except KeyboardInterrupt:
            print("\n\nBenchmark interrupted by user")
            break

    # Summary
    print("\n" + "=" * 60)
    print("Summary")
    print("=" * 60)
    print("\nPhoto      Working   Preprocess")
    print("-" * 60)
    for size, working_size, avg in preprocess_results:
        print(f"{size:4d}x{size:<4d}  {working_size:5d}     {avg:6.3f}s")

    print("\nPage       Pixels     Fill")
    print("-" * 60)
    for size, pixel_count, avg in fill_results:
        print(f"{size:4d}x{size:<4d}  {pixel_count:8d}   {avg:6.3f}s")

    print("\n" + "=" * 60)


if __name__ == "__main__":
    main()
