"""
全局对决配置常量
存放所有硬编码的数值参数，便于后续调整平衡性
"""


class Config:
    """全局对决配置"""

    # ========== 生命与真气 ==========
    MAX_HEALTH = 100            # 生命上限 (百分制)
    DEFAULT_MAX_CHI = 20        # 默认真气上限
    DEFAULT_INITIAL_CHI = 10    # 默认初始真气
    CHI_REGEN_PER_TURN = 1.0    # 每次行动前的基础真气回复

    # ========== 回合限制 ==========
    MAX_TURNS = 50              # 回合上限 (一名角色行动一次记为一回合)

    # ========== 伤害计算 ==========
    DEFENSE_K = 100             # 减伤公式: 减伤% = 防御 / (防御 + K)
    DEFENSE_REDUCTION_CAP = 0.8 # 减伤上限
    BASE_CRIT_CHANCE = 0.15     # 基础暴击率
    BASE_CRIT_MULTIPLIER = 2.5  # 基础暴击倍率
    FINISHER_CRIT_CHANCE = 0.30 # 终结技默认暴击率
    STAGGER_CHANCE = 0.25       # 暴击造成踉跄的概率
    MOMENTUM_DAMAGE_STEP = 0.02 # 每点势头带来的伤害修正
    MOMENTUM_MIN = -5
    MOMENTUM_MAX = 5
    EXPOSED_DAMAGE_BONUS = 1.25 # 破绽状态下承受的伤害倍率
    FLAG_DURATION = 2           # 行为标记持续回合数

    # ========== 伤害结果分级 ==========
    # 伤害 < 阈值 即归入对应等级, 0 伤害为未命中
    GLANCE_DAMAGE_BELOW = 5
    HIT_DAMAGE_BELOW = 15
    DEVASTATING_DAMAGE_BELOW = 25

    # ========== 绝境系统 ==========
    DESPERATION_HEALTH = 25     # 绝境招式解锁 / 绝境状态进入阈值
    # (生命阈值, 攻击加成, 防御惩罚)
    DESPERATION_TIERS = (
        (5, 1.30, 0.15),
        (10, 1.20, 0.10),
        (15, 1.10, 0.05),
    )

    # ========== 模式侦测 ==========
    HISTORY_LENGTH = 20         # 招式历史环形缓冲长度
    STALE_RUN_LENGTH = 5        # 连续相同招式达到该值即视为僵化
    DAMAGE_WINDOW = 5           # 伤害趋势统计窗口 (最近 K 次行动)
    ESCALATION_DAMAGE_TURN = 30
    ESCALATION_DAMAGE_AVG = 1.5
    STALEMATE_TURN = 20
    STALEMATE_DAMAGE_AVG = 1.0
    STALEMATE_NO_DAMAGE_STREAK = 4
    REPOSITION_LIMIT = 5
    ESCALATION_COOLDOWN = 6     # 同一角色两次强制升级之间的最少回合
    STALEMATE_BREAK_LIMIT = 3   # 僵局升级累计次数达到后强制结束战斗

    # ========== AI 评分 ==========
    AI_CONSIDERED_TOP_N = 3
    SCORE_POWER_WEIGHT = 1.0
    COUNTER_BONUS = 8.0
    STALE_PUNISH_BONUS = 4.0
    LOW_HEALTH_THRESHOLD = 30
    HIGH_HEALTH_THRESHOLD = 70
    LOW_HEALTH_DEFENSE_BONUS = 10.0
    LOW_HEALTH_DESPERATION_BONUS = 12.0
    HIGH_HEALTH_OFFENSE_BONUS = 4.0
    OPPONENT_CRITICAL_HEALTH = 20
    FINISHING_BONUS = 10.0
    FINISHER_FINISHING_BONUS = 15.0
    LOW_CHI_RATIO = 0.3
    HIGH_CHI_RATIO = 0.7
    LOW_CHI_BONUS = 6.0
    HIGH_CHI_POWER_WEIGHT = 0.2
    PIERCING_BONUS = 3.0
    PIERCING_VS_DEFENSE_BONUS = 6.0
    HIGH_DAMAGE_BONUS = 4.0
    UNLOCK_BONUS = 12.0
    ARC_RISK_WEIGHT = 0.5
    ESCALATION_BONUS = 10.0
    ESCALATION_DEFENSIVE_PENALTY = 10.0
    REPEAT_PENALTY = 3.0
    REDUNDANT_BUFF_PENALTY = 8.0

    # ========== 性格与心理 ==========
    PERSONALITY_WEIGHT = 8.0            # 性格维度偏离中性 (0.5) 时的评分权重
    MIN_RESILIENCE = 0.5
    # 性格标签 -> 性格维度增量
    PERSONALITY_TRAITS = {
        "aggressive": {"aggression": 0.3, "risk_tolerance": 0.2},
        "perfectionist": {"risk_tolerance": -0.1, "resilience": -0.2},
        "evasive": {"aggression": -0.1, "defensive_bias": 0.2},
        "pacifist": {"aggression": -0.3, "defensive_bias": 0.2},
        "stubborn": {"risk_tolerance": 0.1, "resilience": 0.2},
        "honorable": {"risk_tolerance": -0.1},
        "protective": {"defensive_bias": 0.2},
        "resilient": {"resilience": 0.3},
        "tank": {"aggression": -0.1, "defensive_bias": 0.3},
    }
    STRESS_DAMAGE_RATIO = 0.5           # 每点承受伤害带来的压力
    STRESS_CRIT_RECEIVED = 20.0
    STRESS_EXPOSED = 15.0
    STRESS_MOMENTUM_WEIGHT = 2.0        # 负势头每点带来的压力
    # (心理状态, 压力阈值), 阈值再乘以韧性; 从高到低检查
    MENTAL_THRESHOLDS = (
        ("broken", 90),
        ("shaken", 60),
        ("stressed", 25),
    )
    # 心理状态对性格维度的偏移
    MENTAL_SHIFTS = {
        "stressed": {"risk_tolerance": 0.15},
        "shaken": {"aggression": 0.2, "risk_tolerance": 0.3},
        "broken": {"aggression": 0.4, "risk_tolerance": 0.5},
    }
    MENTAL_SHIFT_CAP = 1.5

    # ========== 叙事系统 ==========
    NARRATION_COOLDOWN_WINDOW = 6       # 同一 (角色, 类别) 的台词冷却窗口
    EARLY_TURNS = 4                     # 前几回合偏向技术叙事
    NARRATIVE_LOW_HEALTH = 30           # 低生命偏向情感叙事
    TRACK_COOLDOWN_ACTIONS = 1          # 轮转时同一角色最近 N 次叙事用过的轨道不再选择
    DRAMATIC_DAMAGE = 15                # 戏剧性回合的伤害阈值
    ESCALATION_INSERT_COOLDOWN = 4
    DESPERATION_INSERT_HEALTH = 20
    DESPERATION_INSERT_COOLDOWN = 5

    # ========== 数据路径 ==========
    DATA_DIR = "data"
    NARRATIVE_POOL_PATH = "config/narrative_pool.yaml"
