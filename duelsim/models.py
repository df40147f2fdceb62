"""
数据模型定义
包含所有枚举类型、配置模型 (Pydantic)、运行时角色模型和战斗记录 (dataclass)
"""

from enum import Enum
from typing import List, Dict, Optional, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from dataclasses import dataclass, field
from .config import Config
from .exceptions import BattleConcludedError

# ============================================================================
# 枚举类型 (Enums)
# ============================================================================

class MoveType(str, Enum):
    """招式类型"""
    ATTACK = "attack"
    DEFENSE_BUFF = "defense_buff"
    UTILITY = "utility"
    FINISHER = "finisher"

class ArcPhase(str, Enum):
    """战斗叙事弧阶段 (按推进顺序排列)"""
    OPENING = "Opening"
    RISING_ACTION = "RisingAction"
    CLIMAX = "Climax"
    FALLING_ACTION = "FallingAction"
    RESOLUTION = "Resolution"
    TWILIGHT = "Twilight"    # 双方同时濒临倒下的特殊阶段

class EffectCategory(str, Enum):
    """状态效果类别"""
    BUFF = "buff"
    DEBUFF = "debuff"

class EffectKind(str, Enum):
    """状态效果种类 (封闭集合)"""
    DEFENSE_UP = "DEFENSE_UP"
    ATTACK_UP = "ATTACK_UP"
    CRIT_CHANCE_UP = "CRIT_CHANCE_UP"
    HEAL_OVER_TIME = "HEAL_OVER_TIME"
    BURN = "BURN"
    STUN = "STUN"
    DEFENSE_DOWN = "DEFENSE_DOWN"
    SLOW = "SLOW"

    @property
    def category(self) -> EffectCategory:
        return EffectCategory.BUFF if self in _BUFF_KINDS else EffectCategory.DEBUFF

_BUFF_KINDS = frozenset({
    EffectKind.DEFENSE_UP, EffectKind.ATTACK_UP,
    EffectKind.CRIT_CHANCE_UP, EffectKind.HEAL_OVER_TIME,
})

class BehaviorFlag(str, Enum):
    """限时行为标记"""
    EXPOSED = "EXPOSED"        # 终结技落空, 露出破绽
    STAGGERED = "STAGGERED"    # 被暴击打得踉跄, 无法闪避下一击
    ESCALATED = "ESCALATED"    # 被强制升级, 倾向高伤害招式

class EscalationReason(str, Enum):
    """强制升级原因"""
    DAMAGE = "damage"
    REPETITION = "repetition"
    STALEMATE = "stalemate"
    REPOSITION = "reposition"

class OutcomeCategory(str, Enum):
    """伤害结果等级"""
    MISS = "miss"
    GLANCE = "glance"
    HIT = "hit"
    DEVASTATING = "devastating"
    OVERWHELMING = "overwhelming"

class LogType(str, Enum):
    """战斗日志条目类型"""
    MOVE = "MOVE"
    STATUS = "STATUS"
    KO = "KO"
    TURN = "TURN"
    VICTORY = "VICTORY"
    DRAW = "DRAW"
    DESPERATION = "DESPERATION"
    ESCALATION = "ESCALATION"
    ARC = "ARC"
    PATTERN_BREAK = "PATTERN_BREAK"

class EndReason(str, Enum):
    """战斗结束原因"""
    KNOCKOUT = "knockout"
    TURN_CAP = "turn_cap"
    STALEMATE = "stalemate"

class MentalState(str, Enum):
    """心理状态 (按压力递增排列, 一场战斗中只会加重)"""
    STABLE = "stable"
    STRESSED = "stressed"
    SHAKEN = "shaken"
    BROKEN = "broken"

# ============================================================================
# 源数据模型 (Source Data Definitions) - Pydantic
# ============================================================================

class DiminishingReturns(BaseModel):
    """收益递减规则"""
    uses_before_decay: int = Field(ge=0)
    decay_per_use: float = Field(gt=0)
    power_floor: float = Field(default=0.0, ge=0)

class UnlockCondition(BaseModel):
    """招式解锁条件 (全部满足才解锁, 未设置的项视为满足)"""
    health_at_most: Optional[float] = None           # 自身生命 <= 该值
    opponent_health_at_most: Optional[float] = None  # 对手生命 <= 该值
    phases: List[ArcPhase] = []                      # 仅在这些弧阶段可用

    def is_met(self, health: float, opponent_health: float, phase: ArcPhase) -> bool:
        if self.health_at_most is not None and health > self.health_at_most:
            return False
        if self.opponent_health_at_most is not None and opponent_health > self.opponent_health_at_most:
            return False
        if self.phases and phase not in self.phases:
            return False
        return True

class EffectSpec(BaseModel):
    """招式附带的状态效果; 增益作用于自身, 减益作用于对手"""
    kind: EffectKind
    chance: float = Field(default=1.0, ge=0.0, le=1.0)
    duration: int = Field(default=2, ge=1)
    potency: float = 0.0

    @property
    def category(self) -> EffectCategory:
        return self.kind.category

class MoveConfig(BaseModel):
    """招式静态配置 (不可变, 按引用共享)"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    type: MoveType = MoveType.ATTACK
    power: float = Field(ge=0)
    chi_cost: float = Field(default=0.0, ge=0, alias="chiCost")
    cooldown: int = Field(default=0, ge=0)
    max_uses: Optional[int] = Field(default=None, ge=1)
    once_per_battle: bool = False
    diminishing_returns: Optional[DiminishingReturns] = None
    unlock: Optional[UnlockCondition] = None

    # 暴击
    crit_chance: float = Field(default=Config.BASE_CRIT_CHANCE, ge=0.0, le=1.0)
    crit_multiplier: float = Field(default=Config.BASE_CRIT_MULTIPLIER, ge=1.0)

    tags: List[str] = []
    counters: List[str] = []     # 克制的招式类型或标签
    applies_effect: Optional[EffectSpec] = None
    element: Optional[str] = None
    environment_constraints: List[str] = []   # 需要场地具备的标签 (任一即可)

    @model_validator(mode='before')
    @classmethod
    def default_finisher_crit(cls, data: Any) -> Any:
        """终结技未显式配置暴击率时使用更高的默认值"""
        if not isinstance(data, dict):
            return data
        if data.get('type') in (MoveType.FINISHER, MoveType.FINISHER.value) and 'crit_chance' not in data:
            data = {**data, 'crit_chance': Config.FINISHER_CRIT_CHANCE}
        return data

    @model_validator(mode='after')
    def check_power_floor(self) -> 'MoveConfig':
        if self.diminishing_returns and self.diminishing_returns.power_floor > self.power:
            raise ValueError(f"招式 {self.id} 的递减下限高于基础威力")
        return self

    @property
    def is_damaging(self) -> bool:
        """是否造成伤害 (防御增益永不造成伤害, 辅助招式威力为 0 时不造成伤害)"""
        if self.type == MoveType.DEFENSE_BUFF:
            return False
        if self.type == MoveType.UTILITY:
            return self.power > 0
        return True

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

class PersonalityProfile(BaseModel):
    """性格维度 (0.5 为中性, 韧性 1.0 为基准)"""
    model_config = ConfigDict(frozen=True)

    aggression: float = 0.5
    risk_tolerance: float = 0.5
    defensive_bias: float = 0.5
    resilience: float = 1.0

    @classmethod
    def from_tags(cls, tags: List[str]) -> 'PersonalityProfile':
        """按 Config.PERSONALITY_TRAITS 叠加性格标签; 未知标签忽略"""
        values = cls().model_dump()
        for tag in tags:
            for trait, delta in Config.PERSONALITY_TRAITS.get(tag, {}).items():
                values[trait] += delta
        for trait in ("aggression", "risk_tolerance", "defensive_bias"):
            values[trait] = min(1.0, max(0.0, values[trait]))
        values["resilience"] = max(Config.MIN_RESILIENCE, values["resilience"])
        return cls(**values)

    def shifted(self, deltas: Dict[str, float], cap: float) -> 'PersonalityProfile':
        values = self.model_dump()
        for trait, delta in deltas.items():
            values[trait] = min(cap, max(0.0, values[trait] + delta))
        return PersonalityProfile(**values)

class CharacterConfig(BaseModel):
    """角色静态配置表"""
    id: str
    name: str
    max_chi: float = Field(default=Config.DEFAULT_MAX_CHI, gt=0)
    initial_chi: float = Field(default=Config.DEFAULT_INITIAL_CHI, ge=0)
    power: float = Field(default=100.0, gt=0)      # 攻击能力, 100 为基准
    defense: float = Field(default=30.0, ge=0)
    evasion: float = Field(default=0.05, ge=0.0, le=1.0)
    speed: int = 50
    personality: List[str] = []
    moves: List[MoveConfig] = []

    @field_validator('moves')
    @classmethod
    def unique_move_ids(cls, v: List[MoveConfig]) -> List[MoveConfig]:
        seen = set()
        for move in v:
            if move.id in seen:
                raise ValueError(f"重复的招式 ID: {move.id}")
            seen.add(move.id)
        return v

    @model_validator(mode='after')
    def check_initial_chi(self) -> 'CharacterConfig':
        if self.initial_chi > self.max_chi:
            raise ValueError(f"角色 {self.id} 的初始真气超过上限")
        return self

class LocationConfig(BaseModel):
    """场地静态配置表"""
    id: str
    name: str
    description: str = ""
    tags: List[str] = []
    element_modifiers: Dict[str, float] = {}    # 元素 -> 威力倍率

    def multiplier_for(self, move: MoveConfig) -> float:
        if move.element is None:
            return 1.0
        return self.element_modifiers.get(move.element, 1.0)

    def permits(self, move: MoveConfig) -> bool:
        """场地是否满足招式的环境约束"""
        if not move.environment_constraints:
            return True
        return any(tag in self.tags for tag in move.environment_constraints)

# ============================================================================
# 运行时模型 (Runtime State)
# ============================================================================

class StatusEffect(BaseModel):
    """角色身上生效中的状态效果"""
    kind: EffectKind
    duration: int
    potency: float
    source_move: str
    turn_applied: int

    @property
    def category(self) -> EffectCategory:
        return self.kind.category

class Fighter(BaseModel):
    """对决中的角色 (每场战斗开始时由 FighterFactory 创建)"""
    id: str
    name: str
    character_id: str = ""     # 来源角色配置 ID (镜像对战时与 id 不同)
    max_health: float = Config.MAX_HEALTH
    health: float = Config.MAX_HEALTH
    max_chi: float
    chi: float
    power: float
    defense: float
    evasion: float
    speed: int
    personality: List[str] = []
    profile: PersonalityProfile = Field(default_factory=PersonalityProfile)
    moves: List[MoveConfig] = []

    # 心理
    stress: float = 0.0
    mental_state: MentalState = MentalState.STABLE

    # 台账 (冷却 / 使用次数 / 递减惩罚)
    cooldowns: Dict[str, int] = {}
    uses: Dict[str, int] = {}
    penalties: Dict[str, float] = {}

    # 模式侦测
    history: List[str] = []
    damage_history: List[float] = []
    last_escalation_turn: Optional[int] = None
    last_escalation_reason: Optional[EscalationReason] = None
    escalation_counts: Dict[EscalationReason, int] = {}

    # 状态
    effects: List[StatusEffect] = []
    momentum: int = 0
    flags: Dict[BehaviorFlag, int] = {}      # 标记 -> 失效回合
    is_desperate: bool = False

    def is_alive(self) -> bool:
        return self.health > 0

    def get_health_percentage(self) -> float:
        return self.health / self.max_health * 100.0

    def get_move(self, move_id: str) -> Optional[MoveConfig]:
        for move in self.moves:
            if move.id == move_id:
                return move
        return None

    def take_damage(self, amount: float) -> float:
        """扣除生命并返回实际损失"""
        before = self.health
        self.health = max(0.0, self.health - max(0.0, amount))
        return before - self.health

    def heal(self, amount: float) -> float:
        before = self.health
        self.health = min(self.max_health, self.health + max(0.0, amount))
        return self.health - before

    def spend_chi(self, amount: float) -> None:
        self.chi = max(0.0, self.chi - amount)

    def gain_chi(self, amount: float) -> None:
        self.chi = min(self.max_chi, max(0.0, self.chi + amount))

    def shift_momentum(self, delta: int) -> None:
        self.momentum = max(Config.MOMENTUM_MIN, min(Config.MOMENTUM_MAX, self.momentum + delta))

    # ---------- 行为标记 ----------

    def set_flag(self, flag: BehaviorFlag, current_turn: int, duration: int = Config.FLAG_DURATION) -> None:
        self.flags[flag] = current_turn + duration

    def has_flag(self, flag: BehaviorFlag, current_turn: int) -> bool:
        return self.flags.get(flag, -1) >= current_turn

    def clear_flag(self, flag: BehaviorFlag) -> None:
        self.flags.pop(flag, None)

    def expire_flags(self, current_turn: int) -> None:
        for flag in [f for f, expiry in self.flags.items() if expiry < current_turn]:
            del self.flags[flag]

    # ---------- 状态效果 ----------

    def has_effect(self, kind: EffectKind) -> bool:
        return any(e.kind == kind for e in self.effects)

    def effect_potency(self, kind: EffectKind) -> float:
        """同类效果叠加后的总强度"""
        return sum(e.potency for e in self.effects if e.kind == kind)

# ============================================================================
# 战斗记录 (Battle Records) - dataclass
# ============================================================================

@dataclass
class LogEntry:
    """结构化战斗日志条目"""
    turn: int
    actor: str
    type: LogType
    action: str
    result: str
    narrative: str = ""
    target: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "turn": self.turn,
            "actor": self.actor,
            "type": self.type.value,
            "action": self.action,
            "target": self.target,
            "result": self.result,
            "narrative": self.narrative,
            "meta": self.meta,
        }

@dataclass
class ConsideredAction:
    """AI 评估过的候选招式"""
    move_id: str
    name: str
    score: float
    reasons: List[str] = field(default_factory=list)

@dataclass
class AiLogEntry:
    """AI 决策日志条目 (用于复盘与调试)"""
    turn: int
    agent: str
    perceived_state: Dict[str, Any]
    considered_actions: List[ConsideredAction]
    chosen_action: str
    reasoning: str
    narrative: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "turn": self.turn,
            "agent": self.agent,
            "perceived_state": self.perceived_state,
            "considered_actions": [
                {"move_id": a.move_id, "name": a.name, "score": a.score, "reasons": a.reasons}
                for a in self.considered_actions
            ],
            "chosen_action": self.chosen_action,
            "reasoning": self.reasoning,
            "narrative": self.narrative,
        }

@dataclass
class BattleState:
    """单场战斗的全部可变状态, 仅由 TurnResolver / BattleSimulator 修改"""
    fighters: List[Fighter]
    location: LocationConfig
    turn: int = 0
    active_index: int = 0
    arc_phase: ArcPhase = ArcPhase.OPENING
    arc_history: List[ArcPhase] = field(default_factory=lambda: [ArcPhase.OPENING])
    battle_log: List[LogEntry] = field(default_factory=list)
    ai_log: List[AiLogEntry] = field(default_factory=list)
    is_over: bool = False
    winner_id: Optional[str] = None
    end_reason: Optional[EndReason] = None

    @property
    def active_fighter(self) -> Fighter:
        return self.fighters[self.active_index]

    def opponent_of(self, fighter: Fighter) -> Fighter:
        return self.fighters[1] if fighter is self.fighters[0] else self.fighters[0]

    def get_fighter(self, fighter_id: str) -> Optional[Fighter]:
        for f in self.fighters:
            if f.id == fighter_id:
                return f
        return None

    def advance_turn(self) -> int:
        if self.is_over:
            raise BattleConcludedError("战斗已结束, 无法推进回合")
        self.turn += 1
        return self.turn

    def add_log(self, entry: LogEntry) -> None:
        if self.is_over:
            raise BattleConcludedError("战斗已结束, 日志已冻结")
        self.battle_log.append(entry)

    def conclude(self, winner_id: Optional[str], reason: EndReason) -> None:
        self.winner_id = winner_id
        self.end_reason = reason
        self.is_over = True

@dataclass
class BattleResult:
    """对外暴露的战斗结果"""
    winner_id: Optional[str]
    end_reason: EndReason
    turns: int
    location_id: str
    fighters: List[Fighter]
    arc_history: List[ArcPhase]
    battle_log: List[LogEntry]
    ai_log: List[AiLogEntry]

    @property
    def is_draw(self) -> bool:
        return self.winner_id is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "winner_id": self.winner_id,
            "end_reason": self.end_reason.value,
            "turns": self.turns,
            "location_id": self.location_id,
            "fighters": [f.model_dump(mode="json") for f in self.fighters],
            "arc_history": [p.value for p in self.arc_history],
            "battle_log": [e.to_dict() for e in self.battle_log],
            "ai_log": [e.to_dict() for e in self.ai_log],
        }
