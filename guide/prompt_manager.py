from typing import List, Dict, Optional


class PromptManager:
    """
    Stateless builder for the tour-guide narrative prompt.
    The model always answers in the generation language (Traditional Chinese).
    """

    SYSTEM_PROMPT = "你是一個資深導遊，擅長提供旅遊建議和景點資訊。"

    REQUIRED_SECTIONS = [
        "景點名稱(name)",
        "景點歷史(history)",
        "景點描述(description)",
        "景點開放時間(opening_hours)",
    ]

    NO_MATCH_TEXT = "很抱歉，我無法識別這個景點或找到相關資訊。請嘗試提供更清楚的照片或詳細描述。"
    NO_MATCH_SUGGESTIONS = ["拍攝更清楚的照片", "提供景點名稱", "描述周邊環境特徵"]

    @staticmethod
    def _clean_content(content: str) -> str:
        """Collapse whitespace so long index documents don't waste tokens."""
        return " ".join(content.split()).strip()

    @classmethod
    def build_narrative_messages(cls, content: str, image_source: Optional[str] = None) -> List[Dict[str, str]]:
        sections = list(cls.REQUIRED_SECTIONS)
        if image_source:
            sections.append(f"圖片來源(source)：請在結尾加上一行「圖片來源：{image_source}」")

        numbered = "\n".join(f"{i}.{section}" for i, section in enumerate(sections, start=1))
        user_prompt = (
            f"{cls._clean_content(content)}。\n"
            f"根據以上資料，生成結果為一段文字敘述，內容必須包含:\n"
            f"{numbered}\n"
            f"並確保文字敘述流暢、通順。"
        )

        return [
            {"role": "system", "content": cls.SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ]
