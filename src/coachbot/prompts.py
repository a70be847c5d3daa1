"""Canned directives and grounding blocks appended to prompts."""

from typing import Any, Dict, Optional, Sequence

IGNORE_MARKER = "[IGNORE]"

GROUP_IMAGE_FILTER = (
    "【群組圖像過濾指令】：如果這是一般的生活閒聊圖片，且看起來跟「運動紀錄」、「馬拉松」"
    "或是「跑步教練的人設」完全無關，請你直接且只能回覆『[IGNORE]』，絕對不要講任何其他廢話。"
    "如果是運動截圖，再用教練的角度回應。"
)

COACH_VISION = (
    "【教練視覺指令】：請幫我分析這張/這些圖片。如果是餐點，請用美食家角度給建議；"
    "如果是運動數據或跑錶截圖，請用教練角度給予充滿溫度、同理心與幽默感的專業鼓勵。"
    "特別注意：如果截圖或數據中有顯示「特定的人名」，請針對「該跑者」分析。"
)

VENUE_DIRECTIVE = "【重要指令】：請唯一且絕對從以上提供的真實餐廳中揀選推薦，不要憑空捏造！"

VENUE_FORMAT_DIRECTIVE = (
    "若要推薦餐廳，請在回覆最後附上 ```json 區塊，內容為陣列，每個元素包含 "
    "name、rating、price、highlight、mapUrl 欄位。"
)


def build_venue_grounding(venues: Sequence[Dict[str, Any]]) -> Optional[str]:
    """Format venue search results into a grounding block, None if empty.

    The bot never calls this itself. A places-search ``GroundingSource``
    returns its output from ``lookup`` so the model is told to recommend
    only the listed venues in the JSON format the reconciler reads.
    """
    if not venues:
        return None
    lines = ["[附近的真實餐廳資料]"]
    for i, venue in enumerate(venues, 1):
        parts = [f"{i}. {venue.get('name', '未知名稱')}"]
        if venue.get("rating") is not None:
            parts.append(f"評分 {venue['rating']} ({venue.get('user_ratings_total', 0)} 則評論)")
        if venue.get("vicinity"):
            parts.append(f"地址 {venue['vicinity']}")
        if venue.get("map_url"):
            parts.append(f"地圖 {venue['map_url']}")
        lines.append("，".join(parts))
    lines.append(VENUE_DIRECTIVE)
    lines.append(VENUE_FORMAT_DIRECTIVE)
    return "\n".join(lines)


def build_image_context(
    text_with_image: Optional[str],
    is_triggered: bool,
    is_group_chat: bool,
    venue_grounding: Optional[str] = None,
) -> str:
    """Directive sent with an image batch.

    In group chats an untriggered image gets the filter directive so the
    model can answer with the ignore marker for unrelated pictures.
    """
    context = GROUP_IMAGE_FILTER if is_group_chat and not is_triggered else COACH_VISION
    if text_with_image:
        context += f"\n\n[使用者附註了文字]：{text_with_image}"
        if venue_grounding:
            context += f"\n\n{venue_grounding}"
    return context


def build_location_prompt(title: Optional[str], address: Optional[str]) -> str:
    return (
        f"[使用者傳送了所在位置] 標題：{title or ''}, 地址：{address or ''}。"
        "請依據此地點推薦我有什麼好吃的？"
    )
