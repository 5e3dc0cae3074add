"""CLI entry point for the storyboard studio."""

import asyncio
import base64
import logging
import mimetypes
import typer
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import config
from .models import (
    AspectRatio,
    ExportedScene,
    GeneratedAsset,
    GenerationMode,
    ImageResolution,
    MediaPayload,
    PromptFormat,
    StoryboardExport,
)
from .models.project import DEFAULT_VOICE, MAX_SCENES, MIN_SCENES, VOICE_OPTIONS

app = typer.Typer(
    name="adboard",
    help="AI product video storyboard studio",
    no_args_is_help=True
)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"adboard version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    )
) -> None:
    """Storyboard Studio - Turn product photos into TikTok storyboards using AI."""
    pass


def load_media(path: Path, default_mime: str = "image/jpeg") -> MediaPayload:
    """Read a local file as a base64 media payload."""
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    mime_type, _ = mimetypes.guess_type(str(path))
    return MediaPayload(
        data=base64.b64encode(path.read_bytes()).decode("ascii"),
        mime_type=mime_type or default_mime,
    )


# Extensions for the MIME types the Gemini client returns
ASSET_EXTENSIONS = {
    "audio/wav": ".wav",
    "image/png": ".png",
    "image/jpeg": ".jpg",
}


def write_asset(asset: GeneratedAsset, path_stem: Path) -> Path:
    """Decode an asset to disk, choosing the extension from its MIME type."""
    extension = ASSET_EXTENSIONS.get(asset.mime_type) or mimetypes.guess_extension(asset.mime_type) or ".bin"
    path = path_stem.with_suffix(extension)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(base64.b64decode(asset.data))
    return path


def _preview(text: str, width: int = 70) -> str:
    return text[:width] + "..." if len(text) > width else text


def _unlock(access_code: Optional[str]) -> None:
    from .studio import AccessGate

    gate = AccessGate()
    if gate.unlocked:
        return
    attempt = access_code or typer.prompt("Access code", hide_input=True)
    if not gate.unlock(attempt):
        typer.echo("❌ Wrong access code")
        raise typer.Exit(1)


def _build_controller(
    images: List[Path],
    model_refs: List[Path],
    background_refs: List[Path],
    video: Optional[Path],
    title: str,
    description: str,
    ideas: str,
    scenes: int,
    mode: GenerationMode,
    aspect_ratio: AspectRatio,
    resolution: ImageResolution,
):
    from .studio import StudioController

    try:
        config.validate_required()
    except ValueError as e:
        typer.echo(f"❌ Configuration error: {e}")
        raise typer.Exit(1)

    controller = StudioController()
    try:
        controller.set_product_field("images", [load_media(p) for p in images])
        controller.set_product_field("model_images", [load_media(p) for p in model_refs])
        controller.set_product_field("background_images", [load_media(p) for p in background_refs])
        if video:
            controller.set_product_field("reference_video", load_media(video, default_mime="video/mp4"))
    except FileNotFoundError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(1)

    controller.set_product_field("title", title)
    controller.set_product_field("description", description)
    controller.set_product_field("creative_ideas", ideas)
    controller.set_scene_count(scenes)
    controller.set_generation_mode(mode)
    controller.set_aspect_ratio(aspect_ratio)
    controller.set_resolution(resolution)
    return controller


async def _analyze(controller) -> None:
    typer.echo(f"🧠 Analysing product ({len(controller.product.images)} images)...")
    if controller.product.reference_video:
        typer.echo("   Reference video supplied: scene count chosen by the model")

    result = await controller.start_analysis()
    if result is None:
        typer.echo(f"❌ {controller.state.error_message}")
        raise typer.Exit(1)

    typer.echo(f"\n📋 Strategy:")
    typer.echo(f"   Product: {result.product_type}")
    typer.echo(f"   Hook: {_preview(result.hook)}")
    typer.echo(f"   Audience: {_preview(result.target_audience)}")
    typer.echo(f"   Voice: {result.assigned_voice}")
    typer.echo(f"\n📽️  Scenes ({len(result.scenes)}):")
    for draft in result.scenes:
        typer.echo(f"   • {draft.id}: {_preview(draft.visual)}")
        if draft.dialogue:
            typer.echo(f"     🗣  {_preview(draft.dialogue)}")


def _export(controller, output: Path, asset_paths: dict) -> Path:
    analysis = controller.state.analysis
    settings = controller.state.settings
    export = StoryboardExport(
        project_name=controller.product.title or (analysis.product_type if analysis else "storyboard"),
        product_type=analysis.product_type if analysis else "",
        hook=analysis.hook if analysis else "",
        strategy=analysis.strategy if analysis else "",
        assigned_voice=controller.voice,
        generation_mode=settings.generation_mode.value,
        aspect_ratio=settings.aspect_ratio.value,
        image_resolution=settings.image_resolution.value,
        scenes=[
            ExportedScene(
                id=scene.id,
                visual=scene.visual,
                action=scene.action,
                camera=scene.camera,
                dialogue=scene.dialogue,
                dialogue_translation=scene.dialogue_translation,
                prompt_format=scene.prompt_format.value,
                image_prompt=scene.image_prompt,
                assets=asset_paths.get(scene.id, {}),
                error=scene.last_error,
            )
            for scene in controller.scenes
        ],
    )
    output.mkdir(parents=True, exist_ok=True)
    path = output / "storyboard.yaml"
    export.to_yaml(path)
    return path


# Shared option definitions
IMAGES_OPTION = typer.Option(..., "--image", "-i", help="Product image (repeatable)")
MODEL_REF_OPTION = typer.Option([], "--model-ref", help="Reference model image (repeatable)")
BACKGROUND_REF_OPTION = typer.Option([], "--background-ref", help="Reference background image (repeatable)")
VIDEO_OPTION = typer.Option(None, "--video", help="Reference video (overrides scene count)")
TITLE_OPTION = typer.Option("", "--title", help="Product title")
DESCRIPTION_OPTION = typer.Option("", "--description", help="Product description")
IDEAS_OPTION = typer.Option("", "--ideas", help="Creative ideas")
SCENES_OPTION = typer.Option(1, "--scenes", "-s", help="Number of scenes", min=MIN_SCENES, max=MAX_SCENES, clamp=True)
MODE_OPTION = typer.Option(GenerationMode.STANDARD, "--mode", "-m", help="Frames per scene")
ASPECT_OPTION = typer.Option(AspectRatio.PORTRAIT, "--aspect-ratio", "-a", help="Output aspect ratio")
RESOLUTION_OPTION = typer.Option(ImageResolution.HIGH, "--resolution", "-r", help="Frame resolution")
OUTPUT_OPTION = typer.Option(Path("./storyboard"), "--output", "-o", help="Output directory")
ACCESS_OPTION = typer.Option(None, "--access-code", help="Studio access code")
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable verbose logging")


@app.command()
def analyze(
    images: List[Path] = IMAGES_OPTION,
    model_refs: List[Path] = MODEL_REF_OPTION,
    background_refs: List[Path] = BACKGROUND_REF_OPTION,
    video: Optional[Path] = VIDEO_OPTION,
    title: str = TITLE_OPTION,
    description: str = DESCRIPTION_OPTION,
    ideas: str = IDEAS_OPTION,
    scenes: int = SCENES_OPTION,
    mode: GenerationMode = MODE_OPTION,
    aspect_ratio: AspectRatio = ASPECT_OPTION,
    resolution: ImageResolution = RESOLUTION_OPTION,
    output: Path = OUTPUT_OPTION,
    access_code: Optional[str] = ACCESS_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Analyse a product and draft the storyboard script (no rendering)."""
    setup_logging(verbose)
    _unlock(access_code)
    controller = _build_controller(
        images, model_refs, background_refs, video, title, description, ideas,
        scenes, mode, aspect_ratio, resolution,
    )

    asyncio.run(_analyze(controller))

    path = _export(controller, output, {})
    typer.echo(f"\n✅ Storyboard saved: {path}")


@app.command()
def run(
    images: List[Path] = IMAGES_OPTION,
    model_refs: List[Path] = MODEL_REF_OPTION,
    background_refs: List[Path] = BACKGROUND_REF_OPTION,
    video: Optional[Path] = VIDEO_OPTION,
    title: str = TITLE_OPTION,
    description: str = DESCRIPTION_OPTION,
    ideas: str = IDEAS_OPTION,
    scenes: int = SCENES_OPTION,
    mode: GenerationMode = MODE_OPTION,
    aspect_ratio: AspectRatio = ASPECT_OPTION,
    resolution: ImageResolution = RESOLUTION_OPTION,
    prompt_format: PromptFormat = typer.Option(
        PromptFormat.PLAIN,
        "--format",
        help="Prompt format used for every scene"
    ),
    audio: bool = typer.Option(
        True,
        "--audio/--no-audio",
        help="Synthesize dialogue audio for each scene"
    ),
    output: Path = OUTPUT_OPTION,
    access_code: Optional[str] = ACCESS_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Analyse a product, render every scene's frames and export the storyboard."""
    setup_logging(verbose)
    _unlock(access_code)
    controller = _build_controller(
        images, model_refs, background_refs, video, title, description, ideas,
        scenes, mode, aspect_ratio, resolution,
    )

    async def pipeline() -> None:
        await _analyze(controller)

        if prompt_format is PromptFormat.MANIFEST:
            typer.echo(f"\n📝 Rewriting prompts as manifests...")
            for scene in controller.scenes:
                await controller.switch_prompt_format(scene.id, PromptFormat.MANIFEST)

        typer.echo(f"\n🎨 Rendering frames ({mode.value}, {aspect_ratio.value}, {resolution.value})...")
        await controller.generate_storyboard()

        if audio:
            typer.echo(f"\n🎙  Synthesizing dialogue ({controller.voice})...")
            for scene in controller.scenes:
                await controller.generate_speech(scene.id)

    asyncio.run(pipeline())

    # Write assets in scene order
    asset_paths: dict = {}
    failed = 0
    for index, scene in enumerate(controller.scenes, start=1):
        paths = {}
        for kind in mode.frames:
            asset = scene.frame(kind)
            if asset:
                paths[kind.value] = str(write_asset(asset, output / f"scene-{index:02d}-{kind.value}"))
        if scene.audio:
            paths["audio"] = str(write_asset(scene.audio, output / f"scene-{index:02d}-audio"))
        asset_paths[scene.id] = paths

        missing = [kind.value for kind in mode.frames if not scene.frame(kind)]
        if scene.last_error or missing:
            failed += 1
            typer.echo(f"   ❌ {scene.id}: {scene.last_error or 'missing ' + ', '.join(missing)}")
        else:
            typer.echo(f"   ✅ {scene.id}: {', '.join(paths)}")

    path = _export(controller, output, asset_paths)
    typer.echo(f"\n📄 Storyboard saved: {path}")

    if failed:
        typer.echo(f"\n⚠️  {failed} scene(s) incomplete")
        raise typer.Exit(1)
    typer.echo(f"\n✅ All scenes generated successfully!")


@app.command()
def status(
    storyboard: Path = typer.Option(
        Path("./storyboard/storyboard.yaml"),
        "--storyboard",
        "-s",
        help="Path to an exported storyboard.yaml",
        exists=False,
        file_okay=True,
        dir_okay=False
    )
) -> None:
    """Show an exported storyboard."""
    if not storyboard.exists():
        typer.echo(f"❌ No storyboard found at {storyboard}")
        typer.echo("   Run 'adboard run' or 'adboard analyze' first")
        raise typer.Exit(1)

    try:
        export = StoryboardExport.from_yaml(storyboard)
    except Exception as e:
        typer.echo(f"❌ Error loading storyboard: {e}")
        raise typer.Exit(1)

    typer.echo(f"📁 Project: {export.project_name}")
    typer.echo(f"   Mode: {export.generation_mode}")
    typer.echo(f"   Aspect ratio: {export.aspect_ratio} @ {export.image_resolution}")
    typer.echo(f"   Voice: {export.assigned_voice}")
    typer.echo(f"   Scenes: {len(export.scenes)}")

    frames = GenerationMode(export.generation_mode).frames
    typer.echo("\n📽️  Scenes:")
    for scene in export.scenes:
        complete = all(kind.value in scene.assets for kind in frames)
        status_icon = "✅" if complete else "⏳"
        typer.echo(f"   {status_icon} {scene.id}: {', '.join(scene.assets) or 'no assets'}")
        if scene.image_prompt:
            typer.echo(f"      → {_preview(scene.image_prompt, 60)}")
        if scene.error:
            typer.echo(f"      ⚠️  {scene.error}")


@app.command()
def image(
    prompt: str = typer.Argument(
        ...,
        help="Text description of the image to generate"
    ),
    output: Path = typer.Option(
        Path("./frame"),
        "--output",
        "-o",
        help="Output image path (extension follows the returned format)"
    ),
    references: List[Path] = typer.Option(
        [],
        "--reference",
        "-r",
        help="Reference image, strongest first (repeatable, max 5 used)"
    ),
    aspect_ratio: AspectRatio = ASPECT_OPTION,
    resolution: ImageResolution = typer.Option(
        ImageResolution.HIGH,
        "--resolution",
        help="Frame resolution"
    ),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Render a single image with the image model.

    Example:
        adboard image "Handheld selfie POV of a woman holding a serum bottle" -r product.jpg
    """
    from .services.gemini import GeminiClient

    setup_logging(verbose)
    typer.echo(f"🎨 Rendering image")
    typer.echo(f"   Prompt: {_preview(prompt)}")

    try:
        config.validate_required()
        client = GeminiClient()
        refs = [load_media(p) for p in references]
        typer.echo(f"   Model: {client.image_model}")
    except (ValueError, FileNotFoundError) as e:
        typer.echo(f"❌ Configuration error: {e}")
        raise typer.Exit(1)

    try:
        asset = asyncio.run(client.render_image(prompt, aspect_ratio, resolution, refs))
    except Exception as e:
        typer.echo(f"❌ Generation failed: {e}")
        raise typer.Exit(1)

    path = write_asset(asset, output)
    typer.echo(f"✅ Image saved: {path}")


@app.command()
def speak(
    text: str = typer.Argument(
        ...,
        help="Line to speak"
    ),
    voice: str = typer.Option(
        DEFAULT_VOICE,
        "--voice",
        help=f"Voice name ({', '.join(VOICE_OPTIONS)})"
    ),
    output: Path = typer.Option(
        Path("./line.wav"),
        "--output",
        "-o",
        help="Output WAV path"
    ),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Synthesize one line of dialogue to a WAV file."""
    from .services.gemini import GeminiClient, resolve_voice

    setup_logging(verbose)
    typer.echo(f"🎙  Synthesizing with {resolve_voice(voice)}: {_preview(text)}")

    try:
        config.validate_required()
        client = GeminiClient()
    except ValueError as e:
        typer.echo(f"❌ Configuration error: {e}")
        raise typer.Exit(1)

    try:
        asset = asyncio.run(client.synthesize_speech(text, voice))
    except Exception as e:
        typer.echo(f"❌ Speech failed: {e}")
        raise typer.Exit(1)

    path = write_asset(asset, output.with_suffix(""))
    typer.echo(f"✅ Audio saved: {path}")


if __name__ == "__main__":
    app()
