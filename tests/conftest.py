"""Shared fixtures."""

import pytest

from kdc101 import KDC101

from fakes import FakeTransport


@pytest.fixture
def transport():
    t = FakeTransport()
    t.connect()
    t.events.clear()
    return t


@pytest.fixture
def kdc(transport):
    return KDC101('MTS25-Z8', 'Brushed', transport=transport,
                  header_delay=0, data_delay=0)
