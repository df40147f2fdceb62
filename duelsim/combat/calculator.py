import random
from dataclasses import dataclass
from typing import Tuple

from ..config import Config
from ..models import (
    Fighter, MoveConfig, LocationConfig, EffectKind, BehaviorFlag, OutcomeCategory
)
from .arc import ArcModifiers


@dataclass
class StrikeOutcome:
    """一次攻击的判定结果"""
    damage: float
    category: OutcomeCategory
    is_miss: bool = False
    is_crit: bool = False
    staggered: bool = False
    mitigation: float = 0.0


class DamageCalculator:
    """伤害计算核心"""

    @staticmethod
    def desperation_modifiers(fighter: Fighter) -> Tuple[float, float]:
        """
        绝境修正 (生命越低攻击越高、防御越低)

        Args:
            fighter: 目标角色

        Returns:
            (攻击倍率, 减伤惩罚)
        """
        health = fighter.get_health_percentage()
        for threshold, attack_bonus, defense_penalty in Config.DESPERATION_TIERS:
            if health <= threshold:
                return attack_bonus, defense_penalty
        return 1.0, 0.0

    @staticmethod
    def calculate_mitigation(defender: Fighter, arc: ArcModifiers, piercing: bool = False) -> float:
        """
        减伤比例计算 (非线性)
        公式: 减伤% = 防御 / (防御 + K) + 阶段修正 + 防御增益 - 防御削弱 - 绝境惩罚
        穿透招式无视防御增益。

        Returns:
            减伤比例 (0.0 - DEFENSE_REDUCTION_CAP)
        """
        mitigation = defender.defense / (defender.defense + Config.DEFENSE_K)
        mitigation += arc.defense_bonus
        if not piercing:
            mitigation += defender.effect_potency(EffectKind.DEFENSE_UP)
        mitigation -= defender.effect_potency(EffectKind.DEFENSE_DOWN)
        mitigation -= DamageCalculator.desperation_modifiers(defender)[1]
        return max(0.0, min(mitigation, Config.DEFENSE_REDUCTION_CAP))

    @staticmethod
    def calculate_attack_multiplier(attacker: Fighter, arc: ArcModifiers) -> float:
        """
        攻击方综合倍率
        公式: 攻击能力/100 × 阶段倍率 × (1 + 攻击增益) × 绝境加成 × (1 + 势头 × 步长)
        """
        multiplier = attacker.power / 100.0
        multiplier *= arc.damage_multiplier
        multiplier *= 1.0 + attacker.effect_potency(EffectKind.ATTACK_UP)
        multiplier *= DamageCalculator.desperation_modifiers(attacker)[0]
        multiplier *= 1.0 + attacker.momentum * Config.MOMENTUM_DAMAGE_STEP
        return multiplier

    @staticmethod
    def evasion_chance(defender: Fighter, turn: int) -> float:
        """踉跄时无法闪避, 迟缓时闪避减半"""
        if defender.has_flag(BehaviorFlag.STAGGERED, turn):
            return 0.0
        evasion = defender.evasion
        if defender.has_effect(EffectKind.SLOW):
            evasion *= 0.5
        return evasion

    @staticmethod
    def crit_chance(attacker: Fighter, move: MoveConfig) -> float:
        return min(1.0, move.crit_chance + attacker.effect_potency(EffectKind.CRIT_CHANCE_UP))

    @staticmethod
    def categorize(damage: float, is_miss: bool) -> OutcomeCategory:
        """伤害 → 结果等级"""
        if is_miss or damage <= 0:
            return OutcomeCategory.MISS
        if damage < Config.GLANCE_DAMAGE_BELOW:
            return OutcomeCategory.GLANCE
        if damage < Config.HIT_DAMAGE_BELOW:
            return OutcomeCategory.HIT
        if damage < Config.DEVASTATING_DAMAGE_BELOW:
            return OutcomeCategory.DEVASTATING
        return OutcomeCategory.OVERWHELMING

    @staticmethod
    def resolve_strike(
        attacker: Fighter,
        defender: Fighter,
        move: MoveConfig,
        power: float,
        arc: ArcModifiers,
        location: LocationConfig,
        turn: int,
        rng: random.Random,
    ) -> StrikeOutcome:
        """
        结算一次伤害招式 (不修改角色状态)

        判定顺序:
        1. 闪避判定 (随机数 1)
        2. 暴击判定 (随机数 2)
        3. 踉跄判定 (仅暴击时, 随机数 3)
        4. 伤害 = 有效威力 × 攻击倍率 × 场地倍率 × 暴击倍率 × 破绽加成 × (1 - 减伤)

        Args:
            attacker: 攻击方
            defender: 防御方
            move: 使用的招式
            power: 扣除递减惩罚后的有效威力
            arc: 当前阶段修正
            location: 场地
            turn: 当前回合
            rng: 战斗随机源

        Returns:
            StrikeOutcome: 判定结果
        """
        # 1. 闪避
        if rng.random() < DamageCalculator.evasion_chance(defender, turn):
            return StrikeOutcome(damage=0.0, category=OutcomeCategory.MISS, is_miss=True)

        # 2. 暴击
        is_crit = rng.random() < DamageCalculator.crit_chance(attacker, move)

        # 3. 踉跄
        staggered = is_crit and rng.random() < Config.STAGGER_CHANCE

        # 4. 伤害
        raw = power * DamageCalculator.calculate_attack_multiplier(attacker, arc)
        raw *= location.multiplier_for(move)
        if is_crit:
            raw *= move.crit_multiplier
        if defender.has_flag(BehaviorFlag.EXPOSED, turn):
            raw *= Config.EXPOSED_DAMAGE_BONUS

        mitigation = DamageCalculator.calculate_mitigation(defender, arc, piercing=move.has_tag("piercing"))
        damage = round(raw * (1.0 - mitigation), 1)

        return StrikeOutcome(
            damage=damage,
            category=DamageCalculator.categorize(damage, False),
            is_crit=is_crit,
            staggered=staggered,
            mitigation=mitigation,
        )
