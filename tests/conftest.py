import httpx
import pytest
import pytest_asyncio

from core.config import AppSettings
from mocks.fake_sii import CAPTCHA_URL, LOOKUP_URL, FakeSII


@pytest.fixture
def settings(tmp_path):
    return AppSettings(
        _env_file=None,
        captcha_url=CAPTCHA_URL,
        lookup_url=LOOKUP_URL,
        retry_backoff_max_seconds=0,
        captcha_max_retries=3,
        scan_output_dir=tmp_path / "output",
        scan_index_file=tmp_path / "last_run_idx.txt",
    )


@pytest.fixture
def fake_sii():
    return FakeSII()


@pytest_asyncio.fixture
async def http_client(fake_sii):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_sii)) as client:
        yield client
