"""Draw a cubic Bezier curve with samples at uniform parameter and at uniform arc length spacing."""

from pathlib import Path

import svgwrite

from bezarc.bezier import BezierCurve
from bezarc.curve_sampler import CurveSampler

# An "S" shaped cubic with strongly varying speed
CONTROL_POINTS = ((0.0, 0.0), (100.0, 200.0), (0.0, -200.0), (200.0, 0.0))
NUM_SAMPLES = 20
MAX_ERROR = 1e-4

OUTPUT_FILE = "data/output/example/svg/svg_arc_length_samples.svg"


def main(output_file: str = OUTPUT_FILE) -> str:
    """Write the SVG file and return its path."""
    curve = BezierCurve(CONTROL_POINTS)
    outline = curve.polygonize(200)
    uniform_param = curve.polygonize(NUM_SAMPLES)
    uniform_length = CurveSampler.polygonize_uniform_arc_length(curve, NUM_SAMPLES, MAX_ERROR)

    Path(output_file).parent.mkdir(parents=True, exist_ok=True)
    dwg = svgwrite.Drawing(output_file, viewBox="-20 -120 240 240")
    dwg.add(
        dwg.polyline(
            [(float(x), float(y)) for x, y in outline],
            stroke="black",
            stroke_width="0.8",
            fill="none",
        )
    )
    for x, y in uniform_param:
        dwg.add(dwg.circle(center=(float(x), float(y)), r=2.5, fill="blue", fill_opacity=0.5))
    for x, y in uniform_length:
        dwg.add(dwg.circle(center=(float(x), float(y)), r=1.5, fill="red"))
    dwg.save()

    print(f"curve: {curve}")
    print(f"blue: {NUM_SAMPLES + 1} samples at uniform parameter spacing")
    print(f"red:  {NUM_SAMPLES + 1} samples at uniform arc length spacing")
    print(f"written to {output_file}")
    return output_file


if __name__ == "__main__":
    main()
