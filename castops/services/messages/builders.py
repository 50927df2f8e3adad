"""
Slack message builders.

Pure functions rendering booking data into Slack mrkdwn. No I/O happens here;
the orchestrators decide which layout applies and where it is posted.
"""

from dataclasses import dataclass
from datetime import date

from castops.models.domain.booking_domain import CastType, OrderMode, normalize_page_key

NOT_ENTERED = "未入力"
UNDECIDED = "未定"
FOOTER_RULE = "-" * 50

STATUS_EMOJI = {
    "OK": "✅",
    "決定": "🎉",
    "NG": "❌",
    "キャンセル": "🚫",
    "条件つきOK": "🟡",
}
DEFAULT_STATUS_EMOJI = "📝"

# Label order of the change summary lines
CHANGE_LABELS = (
    ("project_name", "作品名"),
    ("start_date", "日程"),
    ("end_date", "終了日"),
    ("start_time", "開始時間"),
    ("end_time", "終了時間"),
)


@dataclass(slots=True)
class OrderLine:
    """One candidate as it appears in an order message."""

    cast_name: str
    cast_type: CastType
    project_name: str
    role_name: str
    rank: int = 1
    mention_id: str = ""
    conflict: str = ""

    @property
    def mention(self) -> str:
        return f"<@{self.mention_id}>" if self.mention_id else self.cast_name


def _group_by_project_and_role(lines: list[OrderLine]) -> dict[str, dict[str, list[OrderLine]]]:
    grouped: dict[str, dict[str, list[OrderLine]]] = {}
    for line in lines:
        grouped.setdefault(line.project_name, {}).setdefault(line.role_name, []).append(line)
    return grouped


def _has_internal(lines: list[OrderLine]) -> bool:
    return any(line.cast_type is CastType.INTERNAL for line in lines)


def notion_page_url(project_id: str) -> str:
    return f"https://www.notion.so/{normalize_page_key(project_id)}"


def build_order_message(
    lines: list[OrderLine],
    date_ranges: list[str],
    *,
    mode: OrderMode = OrderMode.SHOOTING,
    account_name: str = "",
    project_id: str = "",
    mention_group_id: str = "",
    cc: str = "",
) -> str:
    """Standard order layout: mentions, dates, account, projects and ranked roles."""
    is_shooting = mode is OrderMode.SHOOTING
    out: list[str] = []

    if mention_group_id:
        out.append(f"<!subteam^{mention_group_id}>")
    if cc:
        out.append(f"cc: {cc}")
    if mention_group_id or cc:
        out.append("")

    if is_shooting:
        out.append("キャスティングオーダーがありました。")
    elif mode is OrderMode.EXTERNAL:
        out.append("外部案件のオーダーがありました。")
    else:
        out.append("社内イベントのオーダーがありました。")
    if _has_internal(lines):
        out.append("*内部キャストはスタンプで反応ください*")

    out.append("")
    out.append("`撮影日`" if is_shooting else "`日程`")
    out.extend(f"・{date_range}" for date_range in date_ranges)

    out.append("")
    out.append("`アカウント`")
    out.append(account_name or NOT_ENTERED)

    out.append("")
    out.append("`作品名`")
    projects = list(dict.fromkeys(line.project_name for line in lines))
    out.append("/".join(p for p in projects if p) or UNDECIDED)

    out.append("")
    out.append("`役名`")
    for project_name, roles in _group_by_project_and_role(lines).items():
        out.append(f"【{project_name}】")
        for role_name, candidates in roles.items():
            out.append(f"  {role_name}")
            for candidate in sorted(candidates, key=lambda c: c.rank):
                out.append(f"    第{candidate.rank}候補：{candidate.mention}")
                if candidate.conflict:
                    out.append(f"    🚨 {candidate.conflict}")

    if project_id:
        out.append("")
        out.append("`Notionリンク`")
        out.append(notion_page_url(project_id))

    out.append("")
    out.append(FOOTER_RULE)
    return "\n".join(out)


def build_additional_order_message(lines: list[OrderLine], *, mention_group_id: str = "") -> str:
    """Compact layout posted into an existing project thread."""
    out: list[str] = []
    if mention_group_id:
        out.append(f"<!subteam^{mention_group_id}>")
        out.append("")

    out.append("追加オーダーのお知らせ")
    if _has_internal(lines):
        out.append("*内部キャストはスタンプで反応ください*")
    out.append("")

    for project_name, roles in _group_by_project_and_role(lines).items():
        out.append(f"【{project_name}】")
        for role_name, candidates in roles.items():
            names = " / ".join(c.mention for c in sorted(candidates, key=lambda c: c.rank))
            out.append(f"{role_name}：{names}")
        out.append("")

    return "\n".join(out).strip()


def build_special_order_message(
    lines: list[OrderLine],
    date_ranges: list[str],
    *,
    mode: OrderMode,
    title: str = "",
    start_time: str | None = None,
    end_time: str | None = None,
    cc: str = "",
) -> str:
    """Layout for external jobs and internal events."""
    out = ["【外部案件】" if mode is OrderMode.EXTERNAL else "【社内イベント】"]

    out.append("`タイトル`")
    out.append(title or NOT_ENTERED)
    out.append("`日時`")
    out.append(", ".join(date_ranges) or NOT_ENTERED)

    if start_time or end_time:
        out.append("`時間`")
        out.append(" ~ ".join(t for t in (start_time, end_time) if t))

    out.append("")
    out.append("`キャスト`")
    for line in lines:
        suffix = (
            " （内部）"
            if mode is OrderMode.INTERNAL and line.cast_type is CastType.INTERNAL
            else ""
        )
        out.append(f"・{line.mention}{suffix}")
        if line.conflict:
            out.append(f"  🚨 {line.conflict}")

    if cc:
        out.append("")
        out.append(f"CC: {cc}")

    return "\n".join(out)


def build_status_message(
    cast_name: str,
    old_label: str,
    new_label: str,
    *,
    cost: int | None = None,
    note: str = "",
) -> str:
    emoji = STATUS_EMOJI.get(new_label, DEFAULT_STATUS_EMOJI)
    text = f"{emoji} *{cast_name}* のステータスが変更されました\n`{old_label}` → `{new_label}`"
    if cost:
        text += f"\nギャラ: ¥{cost:,}"
    if note:
        text += f"\n備考: {note}"
    return text


def _edit_value(field_name: str, value) -> str:
    if not value:
        return ""
    if field_name in ("start_date", "end_date"):
        try:
            return f"{date.fromisoformat(str(value)):%Y/%m/%d}"
        except ValueError:
            return str(value)
    return str(value)


def build_edit_message(cast_name: str, project_name: str, changes: dict[str, dict]) -> str:
    """
    Render a change summary.

    ``changes`` maps a field name to ``{"from": old, "to": new}``; fields
    without a label are ignored.
    """
    text = f"📅 *オーダー内容が変更されました*\nキャスト: {cast_name}（{project_name}）\n"
    text += "\n`変更内容`\n"
    for field_name, label in CHANGE_LABELS:
        change = changes.get(field_name)
        if change:
            before = _edit_value(field_name, change.get("from"))
            after = _edit_value(field_name, change.get("to"))
            text += f"・{label}: {before} → {after}\n"
    return text.strip()


def build_deletion_message(cast_name: str, project_name: str) -> str:
    return f"🗑️ *{cast_name}* のキャスティングが削除されました（{project_name}）"
