"""
Semantic matchers for ledger names and taxonomy item names.

The matching engine only depends on the ``SemanticMatcher`` interface, so the
keyword/synonym heuristic below can be replaced by a proper tokenizer or a
trained classifier without touching the scoring contract.
"""
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)

_SEPARATORS = re.compile(r"[^\w&]+|_")


def normalize(text: Optional[str]) -> str:
    """
    Uppercase and collapse punctuation/whitespace.

    ``str.upper`` does not depend on the process locale, so the result is
    the same on every host.
    """
    if not text:
        return ""
    return " ".join(_SEPARATORS.sub(" ", text.upper()).split())


def tokenize(text: Optional[str]) -> List[str]:
    """Uppercase and split on whitespace only, keeping "A/C" as one token."""
    if not text:
        return []
    return text.upper().split()


@dataclass
class SemanticResult:
    """Outcome of comparing a ledger name with an item name."""

    score: float
    direct_overlaps: List[Tuple[str, str]] = field(default_factory=list)
    synonym_hits: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.score > 0


class SemanticMatcher(ABC):
    """Interface for name-similarity strategies."""

    @abstractmethod
    def compare(self, ledger_name: str, item_name: str) -> SemanticResult:
        """
        Compare a ledger name with a taxonomy item name.

        Args:
            ledger_name: Free-text account name from the ledger.
            item_name: Standardized taxonomy item name.

        Returns:
            SemanticResult with a score in [0, max_score].
        """


class KeywordSynonymMatcher(SemanticMatcher):
    """
    Token overlap plus a fixed synonym table.

    Scoring:
    - +0.10 for each (ledger token, item token) pair where one contains the other;
      tokens of two characters or fewer only count as whole-token matches
    - +0.15 for each synonym of a ledger keyword found in the item name
    - total capped at 0.30
    """

    DIRECT_OVERLAP_WEIGHT = 0.10
    SYNONYM_WEIGHT = 0.15
    MAX_SCORE = 0.30

    # Keys of two characters or fewer only match whole tokens ("OD" must not
    # fire on "GOODS"); longer single-word keys match inside a token so
    # "LOANS" still hits "LOAN"; multi-word keys match the whole name.
    SYNONYMS: Dict[str, List[str]] = {
        # Loan / borrowing terms
        "LOAN": ["BORROWING", "DEBT", "CREDIT", "ADVANCES"],
        "BORROWING": ["LOAN", "DEBT", "CREDIT"],
        "OVERDRAFT": ["BANK OVERDRAFT", "CURRENT LIABILITY", "SHORT TERM BORROWING"],
        "OD": ["OVERDRAFT", "BANK OVERDRAFT", "CURRENT LIABILITY"],
        "TERM LOAN": ["LONG TERM BORROWING", "BORROWING"],
        "BANK LOAN": ["BORROWING", "BANK BORROWING"],
        # Asset terms
        "CASH": ["CASH AND CASH EQUIVALENT", "CASH IN HAND"],
        "BANK": ["CASH AND CASH EQUIVALENT", "BANK BALANCE"],
        "RECEIVABLE": ["TRADE RECEIVABLE", "DEBTORS"],
        "DEBTORS": ["TRADE RECEIVABLE"],
        "INVENTORY": ["STOCK", "STOCK IN TRADE", "INVENTORIES"],
        "STOCK": ["INVENTORIES"],
        "MACHINERY": ["PLANT AND EQUIPMENT"],
        "BUILDING": ["PROPERTY"],
        # Liability and equity terms
        "PAYABLE": ["TRADE PAYABLE", "CREDITORS"],
        "CREDITORS": ["TRADE PAYABLE"],
        "ACCRUED": ["CURRENT LIABILITY", "ACCRUAL"],
        "CAPITAL": ["SHARE CAPITAL"],
        "RESERVE": ["OTHER EQUITY"],
        # Profit and loss terms
        "SALES": ["REVENUE FROM OPERATIONS"],
        "SALARY": ["EMPLOYEE BENEFIT"],
        "WAGES": ["EMPLOYEE BENEFIT"],
        "INTEREST": ["FINANCE COST"],
        "DEPRECIATION": ["DEPRECIATION AND AMORTISATION"],
    }

    def __init__(self, synonyms: Optional[Dict[str, List[str]]] = None):
        """
        Initialize matcher.

        Args:
            synonyms: Optional replacement synonym table.
        """
        table = synonyms if synonyms is not None else self.SYNONYMS
        self._synonyms = {
            normalize(key): [normalize(s) for s in values]
            for key, values in table.items()
        }

    def compare(self, ledger_name: str, item_name: str) -> SemanticResult:
        ledger_tokens = tokenize(ledger_name)
        item_tokens = tokenize(item_name)

        result = SemanticResult(score=0.0)
        if not ledger_tokens or not item_tokens:
            return result

        # Synonyms are looked up on punctuation-free text so "Stock-in-Trade"
        # still reads as STOCK IN TRADE
        ledger_text = normalize(ledger_name)
        item_text = normalize(item_name)

        raw = 0.0
        for ledger_token in ledger_tokens:
            for item_token in item_tokens:
                if self._tokens_overlap(ledger_token, item_token):
                    raw += self.DIRECT_OVERLAP_WEIGHT
                    result.direct_overlaps.append((ledger_token, item_token))

        for ledger_word in ledger_text.split():
            for key, synonyms in self._synonyms.items():
                if " " in key or not self._token_has_key(ledger_word, key):
                    continue
                raw += self._count_synonyms(key, synonyms, item_text, result)

        # Multi-word keys are phrase-level, counted once per name
        for key, synonyms in self._synonyms.items():
            if " " in key and self._contains_phrase(ledger_text, key):
                raw += self._count_synonyms(key, synonyms, item_text, result)

        result.score = round(min(raw, self.MAX_SCORE), 10)
        return result

    def _count_synonyms(
        self,
        key: str,
        synonyms: List[str],
        item_text: str,
        result: SemanticResult,
    ) -> float:
        gained = 0.0
        for synonym in synonyms:
            if synonym in item_text:
                gained += self.SYNONYM_WEIGHT
                result.synonym_hits.append((key, synonym))
        return gained

    @staticmethod
    def _tokens_overlap(a: str, b: str) -> bool:
        if min(len(a), len(b)) <= 2:
            return a == b
        return a in b or b in a

    @staticmethod
    def _token_has_key(token: str, key: str) -> bool:
        if len(key) <= 2:
            return token == key
        return key in token

    @staticmethod
    def _contains_phrase(text: str, phrase: str) -> bool:
        # Phrase must start at a word boundary; trailing plurals are allowed
        return f" {text}".find(f" {phrase}") != -1


# Singleton instance
_matcher_instance: Optional[SemanticMatcher] = None


def get_semantic_matcher() -> SemanticMatcher:
    """Get singleton SemanticMatcher instance."""
    global _matcher_instance
    if _matcher_instance is None:
        _matcher_instance = KeywordSynonymMatcher()
    return _matcher_instance
