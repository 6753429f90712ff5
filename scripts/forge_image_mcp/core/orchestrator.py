"""Generation orchestration: request assembly, provider calls, response reassembly.

All state an operation touches travels in an ``ImageContext``. Validation runs
before any remote call, and files plus session state are only written after
the provider call returned.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .contracts import (
    MODEL_IDS,
    ArtifactPrefix,
    ContentPart,
    GenerationRequest,
    GenerationResult,
    ImagePart,
    ImageRef,
    PersistedImage,
    ProviderResponse,
    TextPart,
)
from forge_image_mcp.providers.base import ProviderAdapter

from .credentials import Credential, CredentialResolver
from .errors import (
    GenerationFailedError,
    ImageToolError,
    InvalidInputError,
    NoPriorImageError,
    NotConfiguredError,
    StalePriorImageError,
)
from .router import resolve_model
from .session import SessionState
from .utils import artifact_filename, ensure_out_dir
from .validation import load_image, validate_image_path

logger = logging.getLogger("forge_image_mcp.orchestrator")

NO_IMAGE_NOTE = "No image was generated. The model may have returned only text."


@dataclass
class ImageContext:
    credentials: CredentialResolver
    adapter_factory: Callable[[str], ProviderAdapter]
    session: SessionState = field(default_factory=SessionState)
    images_dir: Optional[Path] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def require_credential(self) -> Credential:
        credential = self.credentials.resolve()
        if credential is None:
            raise NotConfiguredError()
        return credential


def _require_prompt(prompt: Optional[str]) -> str:
    if not isinstance(prompt, str) or not prompt.strip():
        raise InvalidInputError("prompt is required and must be a non-empty string")
    return prompt


def _write_artifact(out_dir: Path, prefix: ArtifactPrefix, image: ImagePart) -> PersistedImage:
    path = out_dir / artifact_filename(prefix)
    path.write_bytes(image.data)
    logger.info("Saved image to %s", path)
    return PersistedImage(file_path=path, mime_type=image.mime_type, data=image.data)


def reassemble(
    ctx: ImageContext,
    response: ProviderResponse,
    result: GenerationResult,
) -> GenerationResult:
    """Fold the first candidate's parts into ``result``, persisting every image.

    The newest persisted image becomes the session's last artifact. A candidate
    without images leaves the session untouched.
    """
    parts: Sequence[ContentPart] = response.candidates[0].parts if response.candidates else ()
    texts: List[str] = []
    written: List[PersistedImage] = []
    out_dir: Optional[Path] = None
    try:
        for part in parts:
            if isinstance(part, TextPart):
                texts.append(part.text)
                continue
            if out_dir is None:
                out_dir = ensure_out_dir(ctx.images_dir)
            written.append(_write_artifact(out_dir, result.prefix, part))
    except BaseException:
        for artifact in written:
            artifact.file_path.unlink(missing_ok=True)
        raise

    result.produced_artifacts.extend(written)
    if written:
        ctx.session.record_artifact(written[-1].file_path)

    result.narrative_text = "".join(texts)
    if not result.produced_artifacts:
        logger.info("Provider returned no image for %s request", result.prefix)
        if result.narrative_text:
            result.narrative_text = f"{result.narrative_text}\n\n{NO_IMAGE_NOTE}"
        else:
            result.narrative_text = NO_IMAGE_NOTE
    return result


async def _call_provider(
    ctx: ImageContext,
    credential: Credential,
    request: GenerationRequest,
    parts: Sequence[ContentPart],
    action: str,
) -> ProviderResponse:
    model = MODEL_IDS[request.model_id]
    try:
        adapter = ctx.adapter_factory(credential.token)
        return await adapter.generate_content(model=model, parts=parts)
    except ImageToolError:
        raise
    except Exception as exc:
        cause = str(exc) or exc.__class__.__name__
        logger.error("Provider call failed (%s): %s", model, cause)
        raise GenerationFailedError(cause, action=action) from exc


async def generate(ctx: ImageContext, prompt: str, model_id: Optional[str] = None) -> GenerationResult:
    credential = ctx.require_credential()
    prompt = _require_prompt(prompt)
    canonical, model = resolve_model(model_id)
    request = GenerationRequest(prompt=prompt, model_id=canonical)

    logger.info("Generating image with %s", model)
    response = await _call_provider(ctx, credential, request, [TextPart(text=prompt)], "generate image")
    result = GenerationResult(prompt=prompt, prefix="generated", model=model)
    return reassemble(ctx, response, result)


async def edit(
    ctx: ImageContext,
    image_path: str,
    prompt: str,
    reference_images: Optional[Sequence[str]] = None,
    model_id: Optional[str] = None,
) -> GenerationResult:
    credential = ctx.require_credential()
    prompt = _require_prompt(prompt)
    canonical, model = resolve_model(model_id)
    if not isinstance(image_path, str) or not image_path.strip():
        raise InvalidInputError("imagePath is required and must be a non-empty string")

    primary = validate_image_path(image_path)
    if not primary.ok:
        raise InvalidInputError(primary.reason or f"Invalid image: {image_path}")
    try:
        parts: List[ContentPart] = [load_image(primary.ref)]
    except OSError as exc:
        raise InvalidInputError(f"Could not read image {image_path}: {exc}") from exc
    loaded: List[ImageRef] = [primary.ref]

    warnings: List[str] = []
    references = list(reference_images or [])
    for ref_path in references:
        check = validate_image_path(ref_path)
        if not check.ok:
            warnings.append(f'Skipped reference image "{ref_path}": {check.reason}')
            continue
        try:
            parts.append(load_image(check.ref))
        except OSError as exc:
            warnings.append(f'Skipped reference image "{ref_path}": {exc}')
            continue
        loaded.append(check.ref)
    for warning in warnings:
        logger.warning(warning)

    parts.append(TextPart(text=prompt))
    request = GenerationRequest(prompt=prompt, model_id=canonical, input_images=tuple(loaded))

    logger.info("Editing %s with %s (%d reference image(s))", primary.ref.path, model, len(loaded) - 1)
    response = await _call_provider(ctx, credential, request, parts, "edit image")
    result = GenerationResult(
        prompt=prompt,
        prefix="edited",
        model=model,
        warnings=warnings,
        source_image=primary.ref.path,
        reference_images=tuple(references),
    )
    return reassemble(ctx, response, result)


async def continue_editing(
    ctx: ImageContext,
    prompt: str,
    reference_images: Optional[Sequence[str]] = None,
    model_id: Optional[str] = None,
) -> GenerationResult:
    ctx.require_credential()
    last_path = ctx.session.last_artifact_path
    if last_path is None:
        raise NoPriorImageError()
    if not Path(last_path).is_file():
        raise StalePriorImageError(str(last_path))
    return await edit(ctx, str(last_path), prompt, reference_images, model_id)
