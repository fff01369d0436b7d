"""Prompt building and Gemini calls for each tab.

Every structured feature sends an instruction plus a responseSchema and
parses the answer with `parse_structured`, so a reply of the wrong shape
surfaces as MalformedResponse instead of a half-filled result.
"""
import secrets
from typing import List

from log import get_logger

logger = get_logger("taihua.tutor")

from models import (
    DIFFICULTY_DESCRIPTIONS, WORDS_PER_BATCH,
    DictionaryResult, SemanticResult, SentenceAnalysis, Hint, HintList,
    GeneratedWordList, VocabWord, NewsDigest,
    DICTIONARY_SCHEMA, SEMANTIC_SCHEMA, ANALYSIS_SCHEMA, HINT_SCHEMA, VOCABULARY_SCHEMA,
)
from llm import (
    MalformedResponse, generate_structured, user_content,
    ensure_traditional_chinese, deterministic_pinyin, deterministic_zhuyin,
)

GREETING_REQUEST = "会話を始めましょう。短い挨拶をしてください。"


def new_word_id() -> str:
    return secrets.token_hex(6)


# --- Conversation ---

def conversation_instruction(topic: str) -> str:
    return f"""あなたは親切で可愛らしい中国語の家庭教師です。
ユーザー（日本人）と「{topic}」というテーマで会話練習をしてください。

ルール:
1. 台湾の繁体字中国語（Traditional Chinese, Taiwan）で返答してください。
2. 返答のすぐ後に、カッコ書きで日本語訳をつけてください。 (例: 你好！ (こんにちは！))
3. 相手のレベルに合わせて、優しく、励ますように話してください。
4. 周杰倫（ジェイ・チョウ）のようなクールで優しい口調を少し意識してください。"""


async def next_sentence_hints(client, history: str, topic: str) -> List[Hint]:
    prompt = f"""現在の会話の履歴:
{history}

テーマ: {topic}

ユーザーが次に言うべき自然な中国語（台湾繁体字）のフレーズを3つ提案してください。
日本語の訳もつけてください。"""
    result = await generate_structured(client, prompt, HintList, HINT_SCHEMA, feature="hint")
    if not result.hints:
        raise MalformedResponse("No hints returned")
    return [Hint(chinese=ensure_traditional_chinese(h.chinese), japanese=h.japanese) for h in result.hints]


async def analyze_sentence_structure(client, sentence: str) -> SentenceAnalysis:
    prompt = f"""ユーザーが入力した中国語の文章「{sentence}」を分析してください。
台湾の繁体字と注音符号（Bopomofo）を基準にします。

以下の情報をJSONで返してください：
1. isValid: 文法的に自然で正しいかどうか (true/false)
2. correction: もし不自然なら、より自然な台湾華語の表現（なければnull）
3. meaning: 日本語の意味
4. pronunciation: 全体の注音符号
5. breakdown: 各単語ごとの分解（単語、注音、意味）
6. explanation: 文法や使い方のポイントを日本語で詳しく解説（ジェイ・チョウ風の口調で）"""
    analysis = await generate_structured(client, prompt, SentenceAnalysis, ANALYSIS_SCHEMA, feature="analysis")
    if analysis.correction:
        analysis.correction = ensure_traditional_chinese(analysis.correction)
    for item in analysis.breakdown:
        word = ensure_traditional_chinese(item.word)
        if word != item.word:
            item.word = word
            item.bopomofo = deterministic_zhuyin(word)
    return analysis


# --- Semantic compare ---

async def analyze_semantic_difference(client, query: str) -> SemanticResult:
    prompt = f"""ユーザーが入力した以下の日中/中日に関連する言葉や文章について、意味の違いやニュアンスを詳しく、分かりやすく日本語で解説してください。
中国語は台湾繁体字を使用してください。
入力: "{query}"

もし入力が単語一つの場合は、それに関連する類義語との違いを説明してください。
解説文は必ず日本語で出力してください。"""
    return await generate_structured(client, prompt, SemanticResult, SEMANTIC_SCHEMA, feature="semantic")


# --- Dictionary ---

async def search_dictionary(client, query: str) -> DictionaryResult:
    prompt = f"""日中・中日辞書として振る舞ってください。
入力: "{query}"

入力が日本語なら中国語訳（台湾繁体字）を、中国語なら日本語訳を提供してください。
必ず注音符号（Bopomofo）とPinyinの両方を含めてください。"""
    return await generate_structured(client, prompt, DictionaryResult, DICTIONARY_SCHEMA, feature="dictionary")


# --- Vocabulary ---

def vocabulary_prompt(category: str, difficulty: str, exclude: List[str]) -> str:
    return f"""「{category}」というカテゴリに関連する中国語単語を{WORDS_PER_BATCH}個生成してください。
難易度指定: {DIFFICULTY_DESCRIPTIONS[difficulty]}

重要ルール:
1. 中国語は台湾繁体字を使用してください。
2. 注音符号（Bopomofo）を含めてください。
3. 以下の単語は絶対に出力しないでください（重複防止のため）:
   [{', '.join(exclude)}]
4. 指定された難易度（{difficulty}）を厳密に守ってください。EASYとMIDDLEの差を明確にしてください。"""


async def generate_vocabulary(client, category: str, difficulty: str, exclude: List[str]) -> List[VocabWord]:
    """Generate a batch of words for `category` at `difficulty`.

    `exclude` is passed to the model as a request only; whatever comes back is
    returned as-is (one VocabWord per returned item, fresh id, requested
    category). Simplified characters are converted to traditional ones, and a
    converted word or a blank pronunciation gets its pinyin/zhuyin from pypinyin.
    """
    if difficulty not in DIFFICULTY_DESCRIPTIONS:
        raise ValueError(f"Unsupported difficulty: {difficulty}")

    prompt = vocabulary_prompt(category, difficulty, exclude)
    result = await generate_structured(client, prompt, GeneratedWordList, VOCABULARY_SCHEMA, feature="vocabulary")

    words = []
    for item in result.words:
        chinese = ensure_traditional_chinese(item.chinese)
        # Converted text gets pronunciations that match it; otherwise keep the model's
        converted = chinese != item.chinese
        words.append(VocabWord(
            id=new_word_id(),
            chinese=chinese,
            pinyin=deterministic_pinyin(chinese) if converted or not item.pinyin.strip() else item.pinyin,
            zhuyin=deterministic_zhuyin(chinese) if converted or not item.zhuyin.strip() else item.zhuyin,
            japanese=item.japanese,
            category=category,
        ))
    return words


# --- News ---

NEWS_PROMPT = """今週、台湾や中華圏で話題になった興味深いニュースを検索してください。
日本語で学習するのに適した、ポジティブまたは文化的なニュースを3つ選んでください。

各ニュースについて以下のようにまとめてください：
1. タイトル（台湾繁体字）
2. 日本語の要約
3. 学習ポイント（キーワードや表現）

Markdown形式で見やすく整形して出力してください。
記事の元リンク(URL)も必ず引用して表示してください。"""


async def weekly_news(client) -> NewsDigest:
    result = await client.generate([user_content(NEWS_PROMPT)], search=True, feature="news")
    if not result.text.strip():
        raise MalformedResponse("Empty news digest")
    return NewsDigest(content=result.text, sources=result.sources)
