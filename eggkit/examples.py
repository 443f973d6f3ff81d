"""Small demonstration programs."""

from __future__ import annotations

import hashlib
import itertools
import math
from typing import IO, Iterator

from PIL import Image

_SIZE = 100
_CYCLES = 5
_RES = 0.001
_WHITE_INDEX = 0
_BLACK_INDEX = 1


def _without_multiples(stream: Iterator[int], prime: int) -> Iterator[int]:
    return (n for n in stream if n % prime)


def primes(count: int) -> Iterator[int]:
    """The first ``count`` primes, from a chain of filtering stages."""
    stream: Iterator[int] = itertools.count(2)
    for _ in range(count):
        prime = next(stream)
        yield prime
        stream = _without_multiples(stream, prime)


def sha1_line(text: str) -> str:
    return f"sha1({text}) = {hashlib.sha1(text.encode('utf-8')).hexdigest()}"


def sha1_repl(stdin: IO[str], stdout: IO[str]) -> None:
    """Print the SHA-1 of every whitespace-separated word read, with a prompt before each."""
    stdout.write(">>> ")
    for line in stdin:
        for word in line.split():
            stdout.write(sha1_line(word) + "\n")
            stdout.write(">>> ")


def lissajous_frame(freq: float, phase: float) -> Image.Image:
    """One frame of a Lissajous figure as a white/black palette image."""
    side = 2 * _SIZE + 1
    img = Image.new("P", (side, side), _WHITE_INDEX)
    img.putpalette([255, 255, 255, 0, 0, 0])
    pixels = img.load()
    t = 0.0
    limit = _CYCLES * 2 * math.pi
    while t < limit:
        x = math.sin(t)
        y = math.sin(t * freq + phase)
        pixels[_SIZE + int(x * _SIZE + 0.5), _SIZE + int(y * _SIZE + 0.5)] = _BLACK_INDEX
        t += _RES
    return img


def hello(stdout: IO[str]) -> None:
    stdout.write("hello eggos\n")