"""FastAPI application definition."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from .controller import GameController


class NodeSelectRequest(BaseModel):
    node_id: int


class AnswerRequest(BaseModel):
    index: int


class TextAnswerRequest(BaseModel):
    text: str


class ItemRequest(BaseModel):
    index: int


class JournalOpenRequest(BaseModel):
    topic_id: str


class JournalFlipRequest(BaseModel):
    delta: int = 1


def create_app(
    controller: GameController,
    *,
    static_dir: Optional[Path] = None,
) -> FastAPI:
    """Build the FastAPI instance around a controller."""
    app = FastAPI(title="Code Knight API", version="1.0.0")
    app.state.controller = controller

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/ping")
    async def ping():
        return {"status": "ok"}

    @app.get("/api/state")
    async def get_state():
        return controller.get_state_payload()

    @app.post("/api/state/restart")
    async def restart_state():
        return controller.restart_game()

    @app.post("/api/save")
    async def save_game():
        return controller.save()

    @app.get("/api/events")
    async def drain_events():
        return controller.drain_events()

    @app.get("/api/map")
    async def get_map():
        return controller.get_map_payload()

    @app.post("/api/map/select")
    async def select_node(payload: NodeSelectRequest):
        try:
            return controller.select_node(payload.node_id)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.post("/api/map/cancel")
    async def cancel_selection():
        return controller.cancel_selection()

    @app.post("/api/map/confirm")
    async def confirm_move():
        try:
            return controller.confirm_move()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.post("/api/lesson/ack")
    async def acknowledge_lesson():
        try:
            return controller.acknowledge_lesson()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.get("/api/journal")
    async def get_journal():
        return controller.get_journal_payload()

    @app.post("/api/journal/open")
    async def open_journal(payload: JournalOpenRequest):
        try:
            return controller.open_journal(payload.topic_id)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.post("/api/journal/flip")
    async def flip_journal(payload: JournalFlipRequest):
        try:
            return controller.flip_journal(payload.delta)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.post("/api/journal/close")
    async def close_journal():
        return controller.close_journal()

    @app.post("/api/inventory/use")
    async def use_item(payload: ItemRequest):
        try:
            return controller.use_item(payload.index)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.get("/api/combat")
    async def get_combat():
        return controller.get_combat_payload()

    @app.post("/api/combat/answer")
    async def answer(payload: AnswerRequest):
        try:
            return controller.answer(payload.index)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.post("/api/combat/input")
    async def submit_text(payload: TextAnswerRequest):
        try:
            return controller.submit_text(payload.text)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.post("/api/combat/hint")
    async def use_hint():
        try:
            return controller.use_hint()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.post("/api/combat/qte")
    async def resolve_qte():
        try:
            return controller.resolve_qte()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    if static_dir and static_dir.exists():
        app.mount(
            "/web",
            StaticFiles(directory=static_dir, html=True),
            name="web",
        )

        @app.get("/")
        async def root():
            index_file = static_dir / "index.html"
            if not index_file.exists():
                raise HTTPException(status_code=404, detail="index.html not found")
            return FileResponse(index_file)

    return app
