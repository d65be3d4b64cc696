#!/usr/bin/env python3
"""Generate a synthetic 10-second test clip for giftrim end-to-end runs.

One color and tone per second range, so trimmed GIFs are easy to eyeball:
  0-2s   440 Hz tone + blue
  2-5s   880 Hz tone + red
  5-7s   silence + black
  7-10s  660 Hz tone + green
"""

import subprocess
import sys
from pathlib import Path


def generate_test_video(output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)

    audio_filter = (
        "sine=f=440:d=2[a0];"
        "sine=f=880:d=3[a1];"
        "anullsrc=r=44100:cl=mono,atrim=duration=2[s0];"
        "sine=f=660:d=3[a2];"
        "[a0][a1][s0][a2]concat=n=4:v=0:a=1[aout]"
    )

    video_filter = (
        "color=c=blue:s=320x240:d=2:r=30[v0];"
        "color=c=red:s=320x240:d=3:r=30[v1];"
        "color=c=black:s=320x240:d=2:r=30[v2];"
        "color=c=green:s=320x240:d=3:r=30[v3];"
        "[v0][v1][v2][v3]concat=n=4:v=1:a=0[vout]"
    )

    filter_complex = audio_filter + ";" + video_filter

    cmd = [
        "ffmpeg", "-y",
        "-filter_complex", filter_complex,
        "-map", "[vout]",
        "-map", "[aout]",
        "-c:v", "libx264",
        "-pix_fmt", "yuv420p",
        "-c:a", "aac",
        "-shortest",
        str(output),
    ]
    subprocess.run(cmd, check=True)
    print(f"Generated: {output}")


if __name__ == "__main__":
    out = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("tests/fixtures/clip10s.mp4")
    generate_test_video(out)
