import yaml
import os
import logging
import string
from typing import Any, Dict, Iterable, List, Optional

from .pool import NarrativeLinePool
from .constants import NarrativeCategory, MoveContext, NarrativeTrack, DEFAULT_VARIANT, LINE_PLACEHOLDERS
from ..models import EffectKind, MentalState
from ..exceptions import NarrativeConfigError

logger = logging.getLogger(__name__)


class NarrativePoolLoader:
    """
    Loads narrative line pools from YAML configuration files.

    Structural problems (unknown categories, unknown contexts, move mappings that
    point at missing move categories) fail fast with NarrativeConfigError.
    """

    _VALID_VARIANTS = (
        {t.value for t in NarrativeTrack}
        | {k.value.lower() for k in EffectKind}
        | {m.value for m in MentalState if m != MentalState.STABLE}
        | {"applied", DEFAULT_VARIANT}
    )

    @staticmethod
    def load_from_file(file_path: str, known_move_ids: Optional[Iterable[str]] = None) -> NarrativeLinePool:
        """Loads a pool from a YAML file."""
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"叙事配置文件不存在: {file_path}")

        with open(file_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        return NarrativePoolLoader.parse(data, known_move_ids)

    @staticmethod
    def parse(data: Dict[str, Any], known_move_ids: Optional[Iterable[str]] = None) -> NarrativeLinePool:
        moves = NarrativePoolLoader._parse_moves(data.get('moves') or {})
        outcomes = NarrativePoolLoader._parse_outcomes(data.get('outcomes') or {})
        characters = NarrativePoolLoader._parse_characters(data.get('characters') or {})
        move_categories = NarrativePoolLoader._parse_move_categories(
            data.get('move_categories') or {}, moves, known_move_ids
        )

        logger.debug(f"[NarrativeLoader] {len(moves)} move categories, {len(outcomes)} outcome categories, "
                     f"{len(characters)} character overrides")
        return NarrativeLinePool(moves, outcomes, characters, move_categories)

    @staticmethod
    def _parse_moves(raw: Dict[str, Any]) -> Dict[str, Dict[str, List[str]]]:
        valid_contexts = {c.value for c in MoveContext}
        parsed: Dict[str, Dict[str, List[str]]] = {}
        for category, contexts in raw.items():
            if not isinstance(contexts, dict):
                raise NarrativeConfigError(f"招式类别 {category} 必须是 context -> lines 映射")
            for context, lines in contexts.items():
                if context not in valid_contexts:
                    raise NarrativeConfigError(f"招式类别 {category} 含未知语境: {context}")
                parsed.setdefault(category, {})[context] = NarrativePoolLoader._lines(lines, f"moves.{category}.{context}")
        return parsed

    @staticmethod
    def _parse_outcomes(raw: Dict[str, Any]) -> Dict[str, Dict[str, List[str]]]:
        valid_categories = {c.value for c in NarrativeCategory}
        parsed: Dict[str, Dict[str, List[str]]] = {}
        for category, variants in raw.items():
            if category not in valid_categories:
                raise NarrativeConfigError(f"未知叙事类别: {category}")
            # 允许直接写成列表, 视为 default
            if isinstance(variants, list):
                variants = {DEFAULT_VARIANT: variants}
            for variant, lines in variants.items():
                if variant not in NarrativePoolLoader._VALID_VARIANTS:
                    raise NarrativeConfigError(f"叙事类别 {category} 含未知分支: {variant}")
                parsed.setdefault(category, {})[variant] = NarrativePoolLoader._lines(lines, f"outcomes.{category}.{variant}")
        return parsed

    @staticmethod
    def _parse_characters(raw: Dict[str, Any]) -> Dict[str, Dict[str, List[str]]]:
        valid_categories = {c.value for c in NarrativeCategory}
        parsed: Dict[str, Dict[str, List[str]]] = {}
        for character_id, categories in raw.items():
            for category, lines in (categories or {}).items():
                if category not in valid_categories:
                    raise NarrativeConfigError(f"角色 {character_id} 含未知叙事类别: {category}")
                parsed.setdefault(character_id, {})[category] = NarrativePoolLoader._lines(
                    lines, f"characters.{character_id}.{category}")
        return parsed

    @staticmethod
    def _parse_move_categories(
        raw: Dict[str, str],
        moves: Dict[str, Dict[str, List[str]]],
        known_move_ids: Optional[Iterable[str]],
    ) -> Dict[str, str]:
        known = set(known_move_ids) if known_move_ids is not None else None
        for move_id, category in raw.items():
            if category not in moves:
                raise NarrativeConfigError(f"招式 {move_id} 映射到未定义的叙事类别: {category}")
            if known is not None and move_id not in known:
                raise NarrativeConfigError(f"叙事映射引用了不存在的招式: {move_id}")
        if known is not None:
            unmapped = sorted(known - set(raw))
            if unmapped:
                logger.warning(f"[NarrativeLoader] 以下招式没有叙事类别, 将使用程序化叙事: {unmapped}")
        return dict(raw)

    @staticmethod
    def _lines(raw: Any, where: str) -> List[str]:
        """去重并保持顺序"""
        if not isinstance(raw, list) or not all(isinstance(x, str) for x in raw):
            raise NarrativeConfigError(f"{where} 必须是字符串列表")
        seen = set()
        lines = []
        for line in raw:
            NarrativePoolLoader._check_placeholders(line, where)
            if line not in seen:
                seen.add(line)
                lines.append(line)
        return lines

    @staticmethod
    def _check_placeholders(line: str, where: str) -> None:
        """只允许 LINE_PLACEHOLDERS 中的具名占位符, 不允许属性/下标访问"""
        try:
            fields = [name for _, name, _, _ in string.Formatter().parse(line) if name is not None]
        except ValueError as e:
            raise NarrativeConfigError(f"{where} 台词格式错误 ({e}): {line!r}")
        unknown = [name for name in fields if name not in LINE_PLACEHOLDERS]
        if unknown:
            raise NarrativeConfigError(f"{where} 台词含未知占位符 {unknown}: {line!r}")
