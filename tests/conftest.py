import json
from collections import deque

import pytest
from fastapi.testclient import TestClient

from procurement.config import Settings
from procurement.errors import GenerationFailure
from procurement.main import create_app
from procurement.models import ProposalCreate, RFPCreate, VendorCreate
from procurement.repository import Repository
from procurement.storage import JsonStore


class FakeGenerator:
    """Returns scripted responses in order and records every prompt."""

    def __init__(self, *responses):
        self.responses = deque(responses)
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        if not self.responses:
            raise GenerationFailure("no scripted response left")
        nxt = self.responses.popleft()
        if isinstance(nxt, Exception):
            raise nxt
        return nxt if isinstance(nxt, str) else json.dumps(nxt)


class FakeMailer:
    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.sent = []

    async def send(self, to, subject, html_body):
        if to in self.fail_for:
            raise OSError(f"connection refused for {to}")
        self.sent.append((to, subject, html_body))
        return f"<{len(self.sent)}@test>"


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path / "data", generation_timeout=5.0)


@pytest.fixture
def repo(settings):
    return Repository(JsonStore(settings.data_dir))


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def client(settings, repo, generator, mailer):
    app = create_app(settings, repository=repo, generator=generator, mailer=mailer)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def rfp(repo):
    return repo.create_rfp(
        RFPCreate(
            title="Office laptops",
            description="20 laptops with 16GB RAM, delivery in 30 days",
            budget=50000,
        )
    )


@pytest.fixture
def vendors(repo):
    return [
        repo.create_vendor(VendorCreate(name="TechFlow Solutions", email="sales@techflow.example.com")),
        repo.create_vendor(VendorCreate(name="RapidSupply Inc", email="orders@rapidsupply.example.com")),
    ]


def add_proposal(repo, rfp, vendor, **fields):
    return repo.create_proposal(
        ProposalCreate(rfp_id=rfp.id, vendor_id=vendor.id, raw_text=f"quote from {vendor.name}", **fields)
    )
