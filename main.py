import sys
import io
import argparse
import json
import logging

# Windows UTF-8 兼容性处理
if sys.platform.startswith('win'):
    # type: ignore (针对特定平台的重写)
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8')
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8')

from pydantic import ValidationError

from duelsim import DataLoader, FighterFactory, Config
from duelsim.combat import BattleSimulator
from duelsim.combat.fallback import FALLBACK_MOVES
from duelsim.exceptions import DuelError
from duelsim.narrative import NarrativePoolLoader, TextRenderer, JSONRenderer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="对决模拟器 - 带防重复叙事的回合制对战")
    parser.add_argument("fighter_a", nargs="?", default="aang", help="A 方角色 ID")
    parser.add_argument("fighter_b", nargs="?", default="azula", help="B 方角色 ID")
    parser.add_argument("location", nargs="?", default="fire_nation_courtyard", help="场地 ID")
    parser.add_argument("--seed", type=int, default=None, help="随机种子 (相同种子得到相同战报)")
    parser.add_argument("--max-turns", type=int, default=Config.MAX_TURNS, help="回合上限")
    parser.add_argument("--json", action="store_true", help="以 JSON 输出完整战斗结果")
    parser.add_argument("--data-dir", type=str, default=Config.DATA_DIR)
    parser.add_argument("--pool", type=str, default=Config.NARRATIVE_POOL_PATH, help="叙事台词池 YAML")
    parser.add_argument("--color", action="store_true", help="文本输出使用 ANSI 颜色")
    parser.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")
    return parser


def main(argv=None) -> int:
    """主函数"""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # 1. 初始化数据加载器
    loader: DataLoader = DataLoader(data_dir=args.data_dir)

    try:
        # 2. 加载所有数据
        loader.load_all()
        known_moves = set(loader.get_all_move_ids()) | set(FALLBACK_MOVES)
        pool = NarrativePoolLoader.load_from_file(args.pool, known_moves)

        # 3. 获取参战角色与场地
        config_a = loader.get_character_config(args.fighter_a)
        config_b = loader.get_character_config(args.fighter_b)
        location = loader.get_location_config(args.location)

        mirror = config_a.id == config_b.id
        fighter_a = FighterFactory.create_fighter(config_a, fighter_id=f"{config_a.id}_a" if mirror else None)
        fighter_b = FighterFactory.create_fighter(config_b, fighter_id=f"{config_b.id}_b" if mirror else None)

        # 4. 运行战斗
        simulator = BattleSimulator(fighter_a, fighter_b, location, pool=pool,
                                    seed=args.seed, max_turns=args.max_turns)
        result = simulator.run_battle()

    except FileNotFoundError as e:
        print(f"❌ 错误: {e}", file=sys.stderr)
        print("请确保 data/ 目录下存在 characters.json, locations.json 以及叙事台词池文件", file=sys.stderr)
        return 1

    except KeyError as e:
        print(f"❌ 未知 ID: {e}", file=sys.stderr)
        print(f"可用角色: {', '.join(sorted(loader.characters))}", file=sys.stderr)
        print(f"可用场地: {', '.join(sorted(loader.locations))}", file=sys.stderr)
        return 2

    except (ValidationError, ValueError, DuelError) as e:
        print(f"❌ 配置错误: {e}", file=sys.stderr)
        return 1

    # 5. 输出
    if args.json:
        print(json.dumps(JSONRenderer().render_result(result), ensure_ascii=False, indent=2))
    else:
        print(TextRenderer().render_result(result, use_color=args.color))

    return 0


if __name__ == "__main__":
    exit_code: int = main()
    sys.exit(exit_code)
