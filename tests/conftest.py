"""
conftest.py
~~~~~~~~~~~

Shared fixtures: seeded networks for the default and the minimal XOR
architecture.
"""

import random

import matplotlib
matplotlib.use("Agg")

import pytest

from xornet.network import create_network


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def xor_network(rng):
    """Minimal XOR network, 2-2-1."""
    return create_network([2, 2, 1], rng=rng)


@pytest.fixture
def deep_network(rng):
    """Default tutorial architecture, 2-4-3-2-1."""
    return create_network([2, 4, 3, 2, 1], rng=rng)
