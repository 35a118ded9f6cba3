"""Reference probe: interesting with a given probability after a delay.

Usage::

    python -m banditry.probes.example <probability 0.0-1.0> <delay seconds>

Exits 1 (interesting) when a uniform draw falls at or below the probability,
0 (uninteresting) otherwise, and 124 on a malformed invocation.
"""

import sys
import time

import numpy as np

EXIT_USAGE = 124


def main(argv: list[str]) -> int:
    if len(argv) != 2:
        print(f"USAGE: {sys.argv[0]} <interestingness likelihood (0.0, 1.0)> <delay seconds>", file=sys.stderr)
        return EXIT_USAGE
    try:
        probability = float(argv[0])
        delay = float(argv[1])
    except ValueError:
        print("Probability and delay must be numbers", file=sys.stderr)
        return EXIT_USAGE
    if not 0.0 <= probability <= 1.0 or delay < 0:
        print("Probability must lie in [0, 1] and delay must be non-negative", file=sys.stderr)
        return EXIT_USAGE

    time.sleep(delay)

    if np.random.default_rng().random() <= probability:
        print("Interesting case")
        return 1
    print("Uninteresting case")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
