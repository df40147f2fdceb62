from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
from typing import Optional

from duelsim.config import Config
from duelsim.loader import DataLoader
from duelsim.factory import FighterFactory
from duelsim.combat.engine import BattleSimulator
from duelsim.combat.fallback import FALLBACK_MOVES
from duelsim.narrative.loader import NarrativePoolLoader
from duelsim.narrative.renderer import JSONRenderer

app = FastAPI(title="Duelsim Battle API")


class BattleRequest(BaseModel):
    fighter_a_id: str
    fighter_b_id: str
    location_id: str
    seed: Optional[int] = None


def build_simulator(req: BattleRequest, data_dir: str = Config.DATA_DIR,
                    pool_path: str = Config.NARRATIVE_POOL_PATH) -> BattleSimulator:
    """加载数据并组装一场战斗; 未知 ID 抛出 KeyError"""
    loader = DataLoader(data_dir=data_dir)
    loader.load_all()

    config_a = loader.get_character_config(req.fighter_a_id)
    config_b = loader.get_character_config(req.fighter_b_id)
    location = loader.get_location_config(req.location_id)

    known_moves = set(loader.get_all_move_ids()) | set(FALLBACK_MOVES)
    pool = NarrativePoolLoader.load_from_file(pool_path, known_moves)

    mirror = config_a.id == config_b.id
    fighter_a = FighterFactory.create_fighter(config_a, fighter_id=f"{config_a.id}_a" if mirror else None)
    fighter_b = FighterFactory.create_fighter(config_b, fighter_id=f"{config_b.id}_b" if mirror else None)
    return BattleSimulator(fighter_a, fighter_b, location, pool=pool, seed=req.seed)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/battle/simulate")
def simulate_battle(req: BattleRequest):
    try:
        sim = build_simulator(req)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e).strip("'\""))
    except FileNotFoundError as e:
        raise HTTPException(status_code=500, detail=str(e))

    result = sim.run_battle()
    return JSONRenderer().render_result(result)


if __name__ == "__main__":
    import uvicorn  # type: ignore
    uvicorn.run(app, host="0.0.0.0", port=8000)
