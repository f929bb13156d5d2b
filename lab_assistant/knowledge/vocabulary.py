# lab_assistant/knowledge/vocabulary.py
"""
Data tables for query expansion, author inference and intent detection.

Everything here is plain configuration. The functions that consume these
tables (tokenizer, authors, intent) take them as arguments so each table
can be swapped in tests.
"""

from typing import Dict, List


# ============================================================
# CHARACTER CLASSES
# ============================================================

KANJI = "一-龯々〆ヵヶ"
HIRAGANA = "ぁ-ゖ"
KATAKANA = "ァ-ヺー"
CJK = HIRAGANA + KATAKANA + "一-龯"


# ============================================================
# FIELD TERMS (scoring-time expansion)
# ============================================================

# canonical field tag -> triggers that activate it, synonyms it pulls in.
# ASCII entries are lower-case.
FIELD_TERMS: Dict[str, Dict[str, List[str]]] = {
    "physiological": {
        "triggers": ["生理", "physiolog", "生体信号", "生体計測"],
        "synonyms": ["心拍", "心拍変動", "hrv", "脳波", "eeg", "fnirs",
                     "皮膚電気", "発汗", "筋電", "emg", "血圧", "呼吸"],
    },
    "eye_tracking": {
        "triggers": ["視線", "eye", "アイトラッキング", "注視"],
        "synonyms": ["視線計測", "eye-tracking", "アイトラッキング",
                     "注視点", "サッカード", "瞳孔"],
    },
    "cognitive": {
        "triggers": ["認知工学", "認知負荷", "cognitive", "メンタルワークロード", "注意配分"],
        "synonyms": ["認知負荷", "注意配分", "ワーキングメモリ", "nasa-tlx",
                     "fnirs", "反応時間"],
    },
    "usability": {
        "triggers": ["ユーザビリティ", "usability", "ux", "使いやすさ", "感性"],
        "synonyms": ["sd法", "ahp", "感性工学", "インタフェース", "sus",
                     "ui設計"],
    },
    "vr": {
        "triggers": ["vr", "仮想現実", "hmd", "空間認知", "没入"],
        "synonyms": ["hmd", "距離知覚", "モーションキャプチャ", "没入感",
                     "バーチャル"],
    },
    "human_error": {
        "triggers": ["ヒューマンエラー", "sherpa", "エラー分析"],
        "synonyms": ["sherpa", "エラー分析", "ヒヤリハット", "iot監視"],
    },
    "elderly": {
        "triggers": ["高齢", "elderly", "ユニバーサル"],
        "synonyms": ["高齢者", "認知機能低下", "ユニバーサルデザイン", "加齢"],
    },
    "fatigue": {
        "triggers": ["疲労", "ストレス", "fatigue", "stress"],
        "synonyms": ["vas", "心拍変動", "vdt作業", "生理指標", "主観評価"],
    },
    "teamwork": {
        "triggers": ["チームワーク", "teamwork", "航空管制"],
        "synonyms": ["コミュニケーション", "human factors", "航空管制", "crm"],
    },
    "safety": {
        "triggers": ["安全", "safety", "危険予知", "事故"],
        "synonyms": ["危険予知", "ハインリッヒ", "heinrich", "事故防止",
                     "リスクアセスメント"],
    },
    "biomechanics": {
        "triggers": ["生体力学", "作業姿勢", "biomechanic", "動作解析"],
        "synonyms": ["作業姿勢", "筋負担", "モーションキャプチャ", "重心動揺"],
    },
    "deep_learning": {
        "triggers": ["深層学習", "ディープラーニング", "deep", "ニューラル", "cnn"],
        "synonyms": ["cnn", "resnet", "畳み込みニューラルネットワーク",
                     "transformer", "attention", "vision transformer"],
    },
    "nlp": {
        "triggers": ["自然言語", "nlp", "言語モデル", "テキスト分類"],
        "synonyms": ["bert", "gpt", "transformer", "感情分析", "テキスト分類",
                     "tf-idf"],
    },
    "reinforcement": {
        "triggers": ["強化学習", "reinforcement", "エージェント"],
        "synonyms": ["q学習", "dqn", "ppo", "actor-critic", "marl",
                     "マルチエージェント"],
    },
    "iot_edge": {
        "triggers": ["iot", "エッジ", "edge"],
        "synonyms": ["エッジコンピューティング", "量子化", "プルーニング",
                     "raspberry pi", "スマートホーム"],
    },
    "blockchain": {
        "triggers": ["ブロックチェーン", "blockchain", "スマートコントラクト"],
        "synonyms": ["ethereum", "スマートコントラクト", "著作権管理"],
    },
    "privacy": {
        "triggers": ["連合学習", "federated", "プライバシー"],
        "synonyms": ["fedavg", "fedprox", "non-iid", "連合学習", "匿名化"],
    },
    "xai": {
        "triggers": ["説明可能", "xai", "explainable"],
        "synonyms": ["lime", "shap", "grad-cam", "lrp"],
    },
    "generative": {
        "triggers": ["gan", "generative", "画像生成"],
        "synonyms": ["gan", "stylegan", "wgan-gp", "合成画像"],
    },
}


# ============================================================
# TECHNICAL TERMS
# ============================================================

# Non-ASCII terms that earn the technical bonus. Lower-case ASCII tokens
# are technical by shape.
TECHNICAL_TERMS = frozenset([
    "sd法", "vdt作業", "iot監視", "ui設計", "q学習",
    "アイトラッキング", "視線計測", "心拍変動", "脳波", "筋電", "皮膚電気",
    "モーションキャプチャ", "感性工学", "認知負荷", "距離知覚",
    "深層学習", "強化学習", "連合学習", "自然言語処理",
    "ブロックチェーン", "スマートコントラクト", "エッジコンピューティング",
    "畳み込みニューラルネットワーク", "マルチエージェント",
    "量子化", "プルーニング", "感情分析",
])


# ============================================================
# FIELD INQUIRY
# ============================================================

# Extra aliases on top of every trigger and synonym in FIELD_TERMS.
EXTRA_FIELD_ALIASES: Dict[str, str] = {
    "心電図": "physiological",
    "生理指標": "physiological",
    "生体情報": "physiological",
    "バイタル": "physiological",
    "眼球運動": "eye_tracking",
    "アイカメラ": "eye_tracking",
    "認知": "cognitive",
    "メンタルワークロード": "cognitive",
    "ワークロード": "cognitive",
    "ui": "usability",
    "ux": "usability",
    "インタフェース": "usability",
    "インターフェース": "usability",
    "官能評価": "usability",
    "バーチャルリアリティ": "vr",
    "メタバース": "vr",
    "エラー": "human_error",
    "ミス": "human_error",
    "高齢者": "elderly",
    "ストレス評価": "fatigue",
    "疲労評価": "fatigue",
    "チーム": "teamwork",
    "事故防止": "safety",
    "労働安全": "safety",
    "姿勢": "biomechanics",
    "mocap": "biomechanics",
    "機械学習": "deep_learning",
    "画像認識": "deep_learning",
    "ai": "deep_learning",
    "言語処理": "nlp",
    "bert": "nlp",
    "自動運転": "reinforcement",
    "ロボット": "reinforcement",
    "エッジコンピューティング": "iot_edge",
    "暗号資産": "blockchain",
    "匿名化": "privacy",
    "可視化": "xai",
}


def build_field_aliases(
    field_terms: Dict[str, Dict[str, List[str]]],
    extra: Dict[str, str],
) -> Dict[str, str]:
    """
    alias -> field tag, from every trigger and synonym plus the extras.

    When a term belongs to several fields the first field listed wins.
    """

    aliases: Dict[str, str] = {}

    for tag, entry in field_terms.items():

        for term in entry["triggers"] + entry["synonyms"]:
            aliases.setdefault(term.lower(), tag)

        aliases.setdefault(tag.replace("_", " "), tag)

    for term, tag in extra.items():
        aliases[term.lower()] = tag

    return aliases


FIELD_INQUIRY_ALIASES = build_field_aliases(FIELD_TERMS, EXTRA_FIELD_ALIASES)

# Each pattern exposes a named group "subject".
FIELD_INQUIRY_PATTERNS: List[str] = [
    r"(?P<subject>.+?)(?:を|について|に関して|に関する|の)(?:研究|調査|専門に?)(?:した|している|していた|してた|する|の)(?:人|方|学生|先輩|研究者)",
    r"(?P<subject>.+?)を(?:使|用い|利用し|活用し)(?:った|た|て(?:いる|いた)?)(?:研究|論文|実験)",
    r"(?P<subject>.+?)(?:関連|系)の(?:研究|論文)",
    r"(?:who|people who|anyone who) (?:researched|studied|worked on|research|study|works on) (?P<subject>[^?]+)",
    r"(?:studies|research|papers|theses) (?:using|with|that used|that use) (?P<subject>[^?]+)",
]

# Particles that separate a subject from the words before it.
SUBJECT_SEPARATORS = r"[はがにでも、,，]"


# ============================================================
# STOP TERMS
# ============================================================

# Removed from queries before tokens are extracted. Longest first.
GENERIC_STOP_TERMS: List[str] = sorted([
    "修士論文", "研究者", "研究", "論文", "修論", "卒論", "修士",
    "内容", "関連", "過去", "教えて", "知りたい", "ありますか", "について",
    "ください",
], key=len, reverse=True)


# ============================================================
# AUTHOR INFERENCE
# ============================================================

AUTHOR_FILENAME_STOPWORDS: List[str] = [
    "修士論文", "修論", "卒論", "本文", "最終", "最終提出版", "完成版",
    "final", "v", "ver", "版",
]

AUTHOR_CONTENT_SCAN_CHARS = 3000

_NAME = f"[{CJK}]{{2,10}}"
_CONTENT_NAME = f"[{KANJI}{KATAKANA}]{{2,10}}"

AUTHOR_PAREN_PATTERN = rf"[（(]({_NAME})[）)]"
AUTHOR_BRACKET_PATTERN = rf"【.*】({_NAME})"
AUTHOR_LABEL_PATTERN = rf"(?:著者|作者|氏名|姓名)[:：]\s*({_CONTENT_NAME})"
AUTHOR_MARKER_PATTERN = rf"({_CONTENT_NAME})\s*(?:君|さん)?\s*(?:学籍番号|指導|所属)"
