"""频道名称匹配。

归一化：转小写，去掉空白、连字符和下划线。

两种匹配规则：
- exact_match: 归一化后完全相等（断点续跑管线使用）
- fuzzy_match: 归一化后互相包含（一次性匹配脚本使用）

两者都针对 get_expanded_names 展开后的别名集合运行。
"""

import re
from collections.abc import Iterable

MAX_EXPANDED_NAMES = 50

_STRIP_RE = re.compile(r"[\s\-_]")
_DIGITS_RE = re.compile(r"\d+")


def normalize(name: str) -> str:
    return _STRIP_RE.sub("", name.lower())


def exact_match(candidate: str, targets: Iterable[str]) -> bool:
    normalized = normalize(candidate)
    return any(normalize(target) == normalized for target in targets)


def fuzzy_match(candidate: str, targets: Iterable[str]) -> bool:
    normalized = normalize(candidate)
    for target in targets:
        normalized_target = normalize(target)
        if normalized_target in normalized or normalized in normalized_target:
            return True
    return False


def get_expanded_names(
    aliases: Iterable[str], limit: int = MAX_EXPANDED_NAMES
) -> list[str]:
    """展开别名集合，处理 "CCTV5" / "CCTV-5" 这类编号写法差异。

    对每个含数字的别名，在第一段数字前插入连字符得到变体，并再次加入原始形式
    （重复加入不产生新元素）。结果保序去重，最多 limit 个。

    Args:
        aliases: 目录中的别名（第一个为规范名）
        limit: 结果数量上限

    Returns:
        展开后的名称列表，无重复
    """
    expanded: dict[str, None] = dict.fromkeys(aliases)
    for alias in list(expanded):
        match = _DIGITS_RE.search(alias)
        if match is None:
            continue
        digits = match.group(0)
        expanded.setdefault(alias.replace(digits, f"-{digits}", 1))
        expanded.setdefault(alias.replace(digits, digits, 1))
    return list(expanded)[:limit]
