# api/__init__.py
# 展示层入口：会话与分享链接 / Presentation-facing entry points: session & share links

from parallel_thought.api.session import AnalysisSession, build_session
from parallel_thought.api.share import SharedState, decode_share_link, encode_share_link

__all__ = [
    "AnalysisSession",
    "SharedState",
    "build_session",
    "decode_share_link",
    "encode_share_link",
]
