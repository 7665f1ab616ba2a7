# main.py
# FastAPI app factory and routes

from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models
from .ai_helpers import FieldExtractor, OpenAIGenerator, TextGenerator
from .comparison import ComparisonService
from .config import Settings, load_settings
from .errors import ProcurementError, ValidationError, make_error_payload
from .log import setup_logging
from .mailer import Mailer, dispatch_rfp, find_rfp_id
from .repository import Repository
from .storage import JsonStore


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[Repository] = None,
    generator: Optional[TextGenerator] = None,
    mailer: Optional[Mailer] = None,
) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings.log_level)

    app = FastAPI(title="RFP Procurement API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    repository = repository or Repository(JsonStore(settings.data_dir))
    generator = generator or OpenAIGenerator(
        settings.openai_api_key, settings.openai_model, settings.generation_timeout
    )
    app.state.settings = settings
    app.state.repository = repository
    app.state.extractor = FieldExtractor(generator, settings.generation_timeout)
    app.state.comparison = ComparisonService(repository, generator, settings.generation_timeout)
    app.state.mailer = mailer or Mailer(settings)

    @app.exception_handler(ProcurementError)
    async def _procurement_error(request: Request, exc: ProcurementError):
        return JSONResponse(
            status_code=exc.status_code,
            content=make_error_payload(exc.stage, exc.message, jsonable_encoder(exc.extra)),
        )

    _register_routes(app)
    return app


def get_repository(request: Request) -> Repository:
    return request.app.state.repository


def get_extractor(request: Request) -> FieldExtractor:
    return request.app.state.extractor


def get_comparison(request: Request) -> ComparisonService:
    return request.app.state.comparison


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


def _register_routes(app: FastAPI):
    # --- RFP endpoints ---
    @app.post("/api/v1/rfps", response_model=models.RFP, status_code=201)
    def create_rfp(body: models.RFPCreate, repo: Repository = Depends(get_repository)):
        return repo.create_rfp(body)

    @app.get("/api/v1/rfps", response_model=List[models.RFPSummary])
    def list_rfps(repo: Repository = Depends(get_repository)):
        return repo.list_rfps()

    @app.get("/api/v1/rfps/{rfp_id}", response_model=models.RFPDetail)
    def get_rfp(rfp_id: int, repo: Repository = Depends(get_repository)):
        return repo.get_rfp_detail(rfp_id)

    @app.patch("/api/v1/rfps/{rfp_id}", response_model=models.RFP)
    def update_rfp(rfp_id: int, body: models.RFPUpdate, repo: Repository = Depends(get_repository)):
        return repo.update_rfp(rfp_id, body)

    @app.post("/api/v1/rfps/from-text", response_model=models.StructuredRequirements)
    async def rfp_from_text(
        body: models.RFPCreateRequest, extractor: FieldExtractor = Depends(get_extractor)
    ):
        return await extractor.structure_rfp(body.text)

    @app.post("/api/v1/rfps/{rfp_id}/structure", response_model=models.RFP)
    async def structure_rfp(
        rfp_id: int,
        repo: Repository = Depends(get_repository),
        extractor: FieldExtractor = Depends(get_extractor),
    ):
        rfp = await run_in_threadpool(repo.get_rfp, rfp_id)
        structured = await extractor.structure_rfp(rfp.description)
        return await run_in_threadpool(repo.update_rfp, rfp_id, models.RFPUpdate(structured_data=structured))

    # --- Send RFP ---
    @app.post("/api/v1/rfps/{rfp_id}/send")
    async def send_rfp(
        rfp_id: int,
        body: models.SendRequest,
        repo: Repository = Depends(get_repository),
        mailer: Mailer = Depends(get_mailer),
    ):
        rfp = await run_in_threadpool(repo.get_rfp, rfp_id)
        vendors = await run_in_threadpool(repo.list_vendors, ids=body.vendor_ids)
        sent = await dispatch_rfp(mailer, rfp, vendors)
        await run_in_threadpool(repo.update_rfp, rfp_id, models.RFPUpdate(status=models.RFPStatus.SENT))
        return {"success": True, "sent_count": sent}

    # --- Vendor endpoints ---
    @app.post("/api/v1/vendors", response_model=models.Vendor, status_code=201)
    def create_vendor(vendor: models.VendorCreate, repo: Repository = Depends(get_repository)):
        return repo.create_vendor(vendor)

    @app.get("/api/v1/vendors", response_model=List[models.Vendor])
    def list_vendors(repo: Repository = Depends(get_repository)):
        return repo.list_vendors()

    # --- Proposals ---
    @app.post("/api/v1/proposals/parse", response_model=models.ParsedProposal)
    async def parse_proposal(
        body: models.ProposalParseRequest,
        repo: Repository = Depends(get_repository),
        extractor: FieldExtractor = Depends(get_extractor),
    ):
        rfp = await run_in_threadpool(repo.get_rfp, body.rfp_id)
        return await extractor.parse_proposal(rfp, body.vendor_text)

    @app.post("/api/v1/proposals", response_model=models.Proposal, status_code=201)
    def create_proposal(body: models.ProposalCreate, repo: Repository = Depends(get_repository)):
        return repo.create_proposal(body)

    @app.get("/api/v1/proposals/compare/{rfp_id}", response_model=models.ComparisonReport)
    async def compare_proposals(rfp_id: int, comparison: ComparisonService = Depends(get_comparison)):
        return await comparison.compare(rfp_id)

    # --- Inbound webhook (vendor replies) ---
    @app.post("/api/v1/email/inbound")
    async def inbound_email(
        payload: models.ProposalInbound,
        repo: Repository = Depends(get_repository),
        extractor: FieldExtractor = Depends(get_extractor),
    ):
        rfp_id = find_rfp_id(payload.subject)
        if rfp_id is None:
            raise ValidationError("Subject has no [RFP-<id>] token")
        rfp = await run_in_threadpool(repo.get_rfp, rfp_id)
        vendor = await run_in_threadpool(repo.find_vendor_by_email, payload.from_email)
        parsed = await extractor.parse_proposal(rfp, payload.body)
        return {
            "rfp_id": rfp.id,
            "vendor_id": vendor.id if vendor else None,
            "raw_text": payload.body,
            "parsed": jsonable_encoder(parsed, by_alias=True),
        }


def run():
    settings = load_settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=5000)
