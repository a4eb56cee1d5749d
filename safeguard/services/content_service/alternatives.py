"""Safer rewrites of analyzed content.

Two paths:
- Textual substitutions (harassment, privacy, professional) computed
  inline for every analysis. No external call.
- SafeAlternativeGenerator: caller-requested generative rewrite through
  the text-generation collaborator, guided by the analysis report.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from safeguard.shared.utils import hash_text_for_audit
from safeguard.services.llm_service import BaseLLM
from .config import PatternLibrary

logger = logging.getLogger(__name__)


NEUTRAL_PLACEHOLDER = "[neutral alternative]"
REDACTION_MARKER = "[REDACTED]"
PROFESSIONAL_PLACEHOLDER = "[professional alternative]"


def _replace_terms(content: str, terms: Iterable[str], replacement: str) -> str:
    for term in terms:
        content = re.sub(rf"\b{re.escape(term)}\b", replacement, content, flags=re.IGNORECASE)
    return content


def neutralize_harassment(content: str, library: PatternLibrary) -> str:
    """Replace direct harassment terms with a neutral placeholder."""
    return _replace_terms(content, library.direct_harassment_terms, NEUTRAL_PLACEHOLDER)


def redact_privacy(content: str, library: PatternLibrary) -> str:
    """Replace every privacy-pattern match with the redaction marker."""
    for pattern in library.privacy_patterns.values():
        content = re.sub(pattern, REDACTION_MARKER, content)
    return content


def professionalize(content: str, library: PatternLibrary) -> str:
    """Replace unprofessional terms with a professional placeholder."""
    return _replace_terms(content, library.unprofessional_terms, PROFESSIONAL_PLACEHOLDER)


SAFE_REWRITE_SYSTEM_PROMPT = (
    "You rewrite social media and professional posts so they keep the author's "
    "intent while removing harassment, personal information and unprofessional "
    "language. Reply with the rewritten post only."
)


@dataclass(frozen=True)
class GeneratedAlternative:
    success: bool
    content: Optional[str] = None
    error: Optional[str] = None
    model: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {"success": self.success}
        if self.success:
            result["alternative"] = self.content
            result["model"] = self.model
        else:
            result["error"] = self.error
        if self.metadata:
            result["metadata"] = self.metadata
        return result


class SafeAlternativeGenerator:
    """Generates a safer version of content with the text-generation collaborator."""

    def __init__(self, llm: BaseLLM, analyzer):
        """Initialize generator.

        Args:
            llm: Text-generation collaborator
            analyzer: ContentRiskAnalyzer used to find what needs fixing
        """
        self.llm = llm
        self.analyzer = analyzer

    def build_prompt(self, content: str, platform: str, report, context: Optional[str]) -> str:
        concerns = [rec.message for rec in report.recommendations]
        lines = [
            f"Platform: {platform}",
            f"Overall risk: {report.overall_risk:.2f}",
        ]
        if context:
            lines.append(f"Context: {context}")
        if concerns:
            lines.append("Concerns:")
            lines.extend(f"- {concern}" for concern in concerns)
        # Personal details never go to the external service
        lines.append("")
        lines.append("Post:")
        lines.append(redact_privacy(content, self.analyzer.library))
        return "\n".join(lines)

    async def generate(
        self,
        user_id: str,
        content: str,
        platform: str,
        context: Optional[str] = None,
    ) -> GeneratedAlternative:
        """Generate a safer alternative.

        Returns:
            GeneratedAlternative; collaborator failures are reported with
            success=False rather than raised

        Raises:
            InvalidInputError: If content or platform is missing
        """
        report = self.analyzer.analyze(user_id, content, platform, context=context)
        prompt = self.build_prompt(content, platform, report, context)

        try:
            response = await self.llm.generate(prompt, system_prompt=SAFE_REWRITE_SYSTEM_PROMPT)
        except Exception as e:
            logger.error(
                "SAFE_ALTERNATIVE_GENERATION_FAILED",
                extra={
                    "content_hash": hash_text_for_audit(content),
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
            return GeneratedAlternative(success=False, error="Failed to generate safe alternative")

        logger.info(
            "SAFE_ALTERNATIVE_GENERATED",
            extra={
                "content_hash": hash_text_for_audit(content),
                "model": response.model,
                "latency_ms": response.latency_ms,
            }
        )
        return GeneratedAlternative(
            success=True,
            content=response.text,
            model=response.model,
            metadata={"originalRisk": round(report.overall_risk, 3)},
        )
