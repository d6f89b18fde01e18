"""
FastAPI backend for the Red Cliffs campaign.
One saved campaign per game id. Every request rebuilds the engine from the stored snapshot
and the seeded rng (seed + draws consumed), so a resumed game plays out exactly as an
uninterrupted one.
"""

import uuid
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .database import get_db, init_db
from .models import Game as GameModel

from sanguo import __version__
from sanguo.config import DEFAULT_DIFFICULTY, DEFAULT_SCENARIO_ID, DEFAULT_SEED
from sanguo.engine.actions import Action
from sanguo.engine.battle_resolver import execute_battle_turn, process_battle_result
from sanguo.engine.combat import BattleEngine
from sanguo.engine.definitions import (
    create_scenario_state,
    list_scenarios,
    load_event_catalog,
    load_strategies,
)
from sanguo.engine.difficulty import apply_difficulty_modifier
from sanguo.engine.errors import NotFoundError, SnapshotError
from sanguo.engine.event_system import EventSystem
from sanguo.engine.executor import ActionExecutor
from sanguo.engine.faction_ai import FactionAIEngine
from sanguo.engine.game_state import GameStateManager
from sanguo.engine.rng import CountingRng
from sanguo.engine.turns import TurnManager
from sanguo.engine.victory import VictoryJudge

app = FastAPI(
    title="Sanguo Campaign API",
    description="Backend API for the Red Cliffs campaign - a turn-based strategy game",
    version=__version__,
)

# CORS configuration for frontend
CORS_ORIGINS = ["http://localhost:5173", "http://localhost:5174", "http://localhost:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


@app.middleware("http")
async def log_requests(request, call_next):
    """Log method and path so 500s can be traced to the failing endpoint."""
    method = getattr(request, "method", "?")
    url = getattr(request, "url", None)
    path = url.path if url else "?"
    try:
        response = await call_next(request)
        if response.status_code >= 500:
            print(f"[500] {method} {path}", flush=True)
        return response
    except Exception:
        print(f"[500] {method} {path} (exception)", flush=True)
        raise


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc):
    """Return 500 with CORS headers so the frontend can read the error."""
    import traceback
    traceback.print_exc()
    origin = request.headers.get("origin")
    allow_origin = origin if origin in CORS_ORIGINS else CORS_ORIGINS[0]
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc)},
        headers={
            "Access-Control-Allow-Origin": allow_origin,
            "Access-Control-Allow-Credentials": "true",
        },
    )


# ===== Pydantic Models =====

class CreateGameRequest(BaseModel):
    """Omitted fields fall back to sanguo.config defaults."""
    scenario_id: str | None = None
    difficulty: str | None = None
    seed: int | None = None


class ActionRequest(BaseModel):
    type: str
    payload: dict[str, Any] = Field(default_factory=dict)


class TacticRequest(BaseModel):
    tactic: str


# ===== Helper Functions =====

class GameSession:
    """Engine objects for one request, wired around a loaded manager and rng."""

    def __init__(self, row: GameModel, manager: GameStateManager, rng: CountingRng):
        self.row = row
        self.manager = manager
        self.rng = rng
        self.battle_engine = BattleEngine(rng)
        self.executor = ActionExecutor(manager, self.battle_engine, rng)

    def turn_manager(self) -> TurnManager:
        scenario_id = self.row.scenario_id
        return TurnManager(
            self.manager,
            EventSystem(load_event_catalog(scenario_id), self.rng),
            VictoryJudge(),
            FactionAIEngine(self.manager, self.executor, self.rng, load_strategies(scenario_id)),
        )


def get_session(game_id: str, db: Session) -> GameSession:
    """Load a saved game; raise 404 if it does not exist or cannot be decoded."""
    row = db.query(GameModel).filter(GameModel.id == game_id).first()
    if not row:
        raise HTTPException(status_code=404, detail=f"Game {game_id} not found")
    try:
        manager = GameStateManager.deserialize(row.state_json)
    except SnapshotError:
        # Corrupt snapshot in DB; treat as not found so the client can start a fresh game
        raise HTTPException(status_code=404, detail=f"Game {game_id} not found")
    return GameSession(row, manager, CountingRng(row.seed, row.rng_draws))


def save_session(session: GameSession, db: Session) -> None:
    """Persist game state and rng position."""
    session.row.state_json = session.manager.serialize()
    session.row.rng_draws = session.rng.draws
    db.commit()


def state_for_response(manager: GameStateManager) -> dict[str, Any]:
    return manager.state.to_dict()


def _engine_error(e: Exception) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


@app.on_event("startup")
def on_startup():
    init_db()


# ===== API Endpoints =====

@app.get("/")
def root():
    return {"message": "Sanguo Campaign API", "version": __version__}


@app.get("/scenarios")
def get_scenarios():
    return {"scenarios": list_scenarios()}


@app.post("/games")
def create_game(request: CreateGameRequest, db: Session = Depends(get_db)):
    """Create a campaign from a scenario, difficulty and seed."""
    scenario_id = request.scenario_id or DEFAULT_SCENARIO_ID
    difficulty = request.difficulty or DEFAULT_DIFFICULTY
    seed = request.seed if request.seed is not None else DEFAULT_SEED
    try:
        state = create_scenario_state(scenario_id, game_id=f"{scenario_id}-{uuid.uuid4().hex[:8]}")
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    try:
        apply_difficulty_modifier(state, difficulty)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    manager = GameStateManager(state)
    row = GameModel(
        id=state.game_id,
        scenario_id=scenario_id,
        difficulty=difficulty,
        seed=seed,
        rng_draws=0,
        state_json=manager.serialize(),
    )
    session = GameSession(row, manager, CountingRng(seed, 0))
    # Turn 1 is started on creation; start-turn is for the turns after each end-turn.
    session.turn_manager().start_turn()
    row.started_turn = manager.state.turn
    db.add(row)
    save_session(session, db)
    return {"game_id": state.game_id, "state": state_for_response(manager)}


@app.get("/games/{game_id}")
def get_game_state(game_id: str, db: Session = Depends(get_db)):
    session = get_session(game_id, db)
    return {
        "game_id": game_id,
        "difficulty": session.row.difficulty,
        "seed": session.row.seed,
        "state": state_for_response(session.manager),
    }


@app.post("/games/{game_id}/start-turn")
def do_start_turn(game_id: str, db: Session = Depends(get_db)):
    """
    Reset the action budget and set phase and season for the current turn.
    Allowed once per turn; a second call for the same turn is rejected with 409.
    """
    session = get_session(game_id, db)
    state = session.manager.state
    if state.game_over:
        raise HTTPException(status_code=400, detail="The game is over.")
    if session.row.started_turn == state.turn:
        raise HTTPException(status_code=409, detail=f"Turn {state.turn} has already started.")
    start = session.turn_manager().start_turn()
    session.row.started_turn = state.turn
    save_session(session, db)
    return {"turn": start.to_dict(), "state": state_for_response(session.manager)}


@app.post("/games/{game_id}/actions")
def do_action(game_id: str, request: ActionRequest, db: Session = Depends(get_db)):
    """Execute one player action. Spends one action whether or not it succeeds."""
    session = get_session(game_id, db)
    state = session.manager.state
    if state.actions_remaining <= 0 and not state.game_over:
        raise HTTPException(status_code=409, detail="No actions left this turn.")

    player_id = session.manager.get_player_faction().id
    action = Action(type=request.type, faction=player_id, payload=dict(request.payload))
    try:
        result = session.executor.execute(action)
    except (NotFoundError, ValueError) as e:
        raise _engine_error(e)
    save_session(session, db)
    return {"result": result.to_dict(), "state": state_for_response(session.manager)}


@app.post("/games/{game_id}/battle/tactic")
def do_battle_tactic(game_id: str, request: TacticRequest, db: Session = Depends(get_db)):
    """Play one clash of the active battle. A finished battle is applied to the world at once."""
    session = get_session(game_id, db)
    battle = session.manager.state.active_battle
    if battle is None:
        raise HTTPException(status_code=400, detail="No active battle")
    try:
        over = execute_battle_turn(battle, request.tactic, session.manager, session.battle_engine)
    except (NotFoundError, ValueError) as e:
        raise _engine_error(e)
    battle_out = battle.to_dict()
    if over:
        process_battle_result(battle, session.manager)
    save_session(session, db)
    return {
        "battle": battle_out,
        "is_over": over,
        "state": state_for_response(session.manager),
    }


@app.post("/games/{game_id}/end-turn")
def do_end_turn(game_id: str, db: Session = Depends(get_db)):
    """
    Upkeep, events, faction AI and the game-over check. A battle started by the AI becomes
    the active battle and must be fought through /battle/tactic before the next turn ends.
    """
    session = get_session(game_id, db)
    if session.manager.state.active_battle is not None:
        raise HTTPException(status_code=409, detail="A battle is in progress. Resolve it first.")
    try:
        end = session.turn_manager().end_turn()
    except (NotFoundError, ValueError) as e:
        raise _engine_error(e)
    if end.ai_initiated_battle is not None and not end.game_over:
        session.manager.set_battle(end.ai_initiated_battle)
    save_session(session, db)
    return {"turn_end": end.to_dict(), "state": state_for_response(session.manager)}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
