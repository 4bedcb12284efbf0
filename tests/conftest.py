import random

import pytest

from game.sim import log as sim_log
from game.systems.economy import EconomySystem
from game.systems.notices import NoticeBoard


@pytest.fixture(autouse=True)
def quiet_logs():
    sim_log.set_debug(False)
    yield


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def ledger():
    return EconomySystem(starting_funds=1_000_000)


@pytest.fixture
def notices():
    return NoticeBoard()
