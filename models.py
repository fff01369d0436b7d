"""Pydantic schemas, constants, and static data for Taihua."""
from typing import Optional, List
from pydantic import BaseModel

# --- Constants ---
TABS = ["conversation", "semantic", "dictionary", "vocabulary", "news"]

CATEGORIES = [
    "旅行", "食事", "買い物", "仕事", "恋愛", "学校", "アニメ", "ネットスラング", "病院",
]

DIFFICULTY_DESCRIPTIONS = {
    "EASY": (
        "【超・初心者向け (HSK 1-2級)】。「水」「食べる」「これ」「行く」など、"
        "生活に必須の最も基本的で短い単語のみ。熟語は避けてください。"
    ),
    "MIDDLE": (
        "【中級者向け (HSK 3-4級)】。日常会話を豊かにするための表現。"
        "「節約」「誤解」「調整」「雰囲気」など、2文字以上の動詞・名詞・形容詞を中心にして、"
        "基礎単語は一切含めないでください。"
    ),
    "HARD": (
        "【上級者・ニュース向け (HSK 5-6級)】。新聞、ニュース、ビジネスで使われる硬い表現や"
        "四字熟語、抽象的な概念を選んでください。口語表現は避けてください。"
    ),
}
DIFFICULTIES = list(DIFFICULTY_DESCRIPTIONS)

MAX_REFRESH_PER_DAY = 10
WORDS_PER_BATCH = 10
MAX_INPUT_LEN = 500

# --- Result Models (what the model must return) ---

class DictionaryExample(BaseModel):
    sentence: str
    translation: str


class DictionaryResult(BaseModel):
    word: str
    pinyin: str
    zhuyin: str
    meaning: str
    examples: List[DictionaryExample]


class SemanticResult(BaseModel):
    explanation: str
    differences: str
    examples: List[str]


class BreakdownItem(BaseModel):
    word: str
    bopomofo: str
    meaning: str


class SentenceAnalysis(BaseModel):
    isValid: bool
    correction: Optional[str] = None
    meaning: str
    pronunciation: str
    breakdown: List[BreakdownItem]
    explanation: str


class Hint(BaseModel):
    chinese: str
    japanese: str


class HintList(BaseModel):
    hints: List[Hint]


class GeneratedWord(BaseModel):
    chinese: str
    pinyin: str
    zhuyin: str
    japanese: str
    category: Optional[str] = None


class GeneratedWordList(BaseModel):
    words: List[GeneratedWord]


class VocabWord(BaseModel):
    id: str
    chinese: str
    pinyin: str
    zhuyin: str
    japanese: str
    category: str
    savedAt: Optional[float] = None


class GroundingSource(BaseModel):
    title: str
    url: str


class NewsDigest(BaseModel):
    content: str
    sources: List[GroundingSource] = []


class ChatMessage(BaseModel):
    id: str
    role: str  # "user" | "model"
    text: str
    isAnalysis: bool = False
    analysis: Optional[SentenceAnalysis] = None


# --- Request Models ---

class QueryRequest(BaseModel):
    query: str


class TopicRequest(BaseModel):
    topic: str


class MessageRequest(BaseModel):
    text: str


class AnalyzeRequest(BaseModel):
    sentence: str


class GenerateRequest(BaseModel):
    category: str
    difficulty: str = "EASY"


# --- Gemini response schemas (OpenAPI subset sent as responseSchema) ---

DICTIONARY_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "word": {"type": "STRING"},
        "pinyin": {"type": "STRING"},
        "zhuyin": {"type": "STRING", "description": "Bopomofo pronunciation"},
        "meaning": {"type": "STRING"},
        "examples": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "sentence": {"type": "STRING"},
                    "translation": {"type": "STRING"},
                },
                "required": ["sentence", "translation"],
            },
        },
    },
    "required": ["word", "pinyin", "zhuyin", "meaning", "examples"],
}

SEMANTIC_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "explanation": {"type": "STRING", "description": "Main explanation of the meaning in Japanese"},
        "differences": {"type": "STRING", "description": "Detailed nuance differences in Japanese"},
        "examples": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Example sentences showing the difference",
        },
    },
    "required": ["explanation", "differences", "examples"],
}

ANALYSIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "isValid": {"type": "BOOLEAN"},
        "correction": {"type": "STRING", "nullable": True},
        "meaning": {"type": "STRING"},
        "pronunciation": {"type": "STRING"},
        "breakdown": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "word": {"type": "STRING"},
                    "bopomofo": {"type": "STRING"},
                    "meaning": {"type": "STRING"},
                },
                "required": ["word", "bopomofo", "meaning"],
            },
        },
        "explanation": {"type": "STRING"},
    },
    "required": ["isValid", "meaning", "pronunciation", "breakdown", "explanation"],
}

HINT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "hints": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "chinese": {"type": "STRING"},
                    "japanese": {"type": "STRING"},
                },
                "required": ["chinese", "japanese"],
            },
        },
    },
    "required": ["hints"],
}

VOCABULARY_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "words": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "chinese": {"type": "STRING"},
                    "pinyin": {"type": "STRING"},
                    "zhuyin": {"type": "STRING"},
                    "japanese": {"type": "STRING"},
                    "category": {"type": "STRING"},
                },
                "required": ["chinese", "pinyin", "zhuyin", "japanese"],
            },
        },
    },
    "required": ["words"],
}
