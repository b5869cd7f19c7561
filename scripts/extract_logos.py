#!/usr/bin/env python3
"""
Logo Extraction CLI Script
Runs the logo pipeline (or the full brand kit extraction) on one image or PDF
and writes the confirmed logo crops to an output directory.
"""

import argparse
import asyncio
import base64
import json
import logging
import re
import sys
from pathlib import Path
from typing import Any, Dict, List

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from core.brand_kit.extractor import BrandKitExtractor
from core.clients.exceptions import VisionQueryError
from core.clients.factory import create_vision_client
from core.config.unified_manager import get_config_manager
from core.vlm.data_models import PipelineStage, ProgressEvent
from core.vlm.image_extraction import ImageDecodeError, load_source_image
from core.vlm.logo_pipeline import ExtractionPipelineOrchestrator, LogoExtractionError

logger = logging.getLogger(__name__)


def print_progress(event: ProgressEvent) -> None:
    if event.stage == PipelineStage.REGION:
        print(f"   [{event.region_index}/{event.region_total}] {event.message}")
    else:
        print(f"🔄 {event.message}")


def slugify(name: str) -> str:
    slug = re.sub(r'[^A-Za-z0-9]+', '_', name).strip('_').lower()
    return slug or "logo"


def write_logos(output_dir: Path, source_name: str, provider: str, logos: List[Dict[str, Any]]) -> None:
    """Write confirmed crops as NN_name.ext files plus a logos.json summary"""
    summary = []
    for index, logo in enumerate(logos, start=1):
        extension = logo["mime_type"].split("/")[-1]
        file_path = output_dir / f"{index:02d}_{slugify(logo['name'])}.{extension}"
        file_path.write_bytes(logo["data"])
        summary.append({
            "file": file_path.name,
            "name": logo["name"],
            "confidence": logo["confidence"],
            "description": logo["description"],
            "source_region": logo["source_region"],
        })
        print(f"   - {logo['name']} ({logo['confidence']:.2f}) -> {file_path}")

    with open(output_dir / "logos.json", 'w', encoding='utf-8') as f:
        json.dump({"source": source_name, "provider": provider, "logos": summary}, f, indent=2)


async def run(args: argparse.Namespace) -> int:
    config = get_config_manager(args.config).config
    provider = args.provider or config.providers.default_provider

    source_path = Path(args.image)
    if not source_path.exists():
        print(f"❌ File not found: {source_path}")
        return 1

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    image = load_source_image(
        source_path.read_bytes(),
        mime_type="application/pdf" if source_path.suffix.lower() == ".pdf" else None,
        filename=source_path.name,
        pdf_render_dpi=config.logo_pipeline.pdf_render_dpi,
    )

    async with create_vision_client(provider, config.providers) as client:
        pipeline = ExtractionPipelineOrchestrator(
            client, config.logo_pipeline, on_progress=print_progress
        )

        if args.brand_kit:
            extractor = BrandKitExtractor(client, config.logo_pipeline, logo_pipeline=pipeline)
            brand_kit = await extractor.extract(image)
        else:
            brand_kit = None
            confirmed = await pipeline.extract(image)

    if brand_kit is not None:
        logos = [
            {
                "name": logo.name,
                "data": base64.b64decode(logo.image_base64),
                "mime_type": logo.mime_type,
                "confidence": logo.confidence,
                "description": logo.description,
                "source_region": logo.source_region,
            }
            for logo in brand_kit.logos.all_logos
        ]
        (output_dir / "brand_kit.json").write_text(brand_kit.model_dump_json(indent=2), encoding="utf-8")
        (output_dir / "guidelines.md").write_text(brand_kit.guidelines or "", encoding="utf-8")
    else:
        logos = [
            {
                "name": logo.name,
                "data": logo.image.data,
                "mime_type": logo.image.mime_type,
                "confidence": logo.confidence,
                "description": logo.description,
                "source_region": logo.image.source_region.to_dict(),
            }
            for logo in confirmed
        ]

    write_logos(output_dir, source_path.name, provider, logos)

    if brand_kit is not None:
        print(f"✅ Brand kit saved to {output_dir}")
    print(f"\n📊 {len(logos)} logo(s) confirmed, results saved to: {output_dir}")
    return 0


def main() -> int:
    """Main CLI function"""
    parser = argparse.ArgumentParser(description="Extract logos from an image or PDF")
    parser.add_argument("image", help="Image or PDF file")
    parser.add_argument("--provider", type=str, help="Provider (default: configured default provider)")
    parser.add_argument("--config", type=str, help="Path to config.yaml")
    parser.add_argument("--output", type=str, default="data/output/logos", help="Output directory")
    parser.add_argument("--brand-kit", action="store_true", help="Extract the complete brand kit")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    print("🚀 Brand Kit Extraction - Logo Extractor")
    print("=" * 60)

    try:
        return asyncio.run(run(args))
    except (LogoExtractionError, VisionQueryError, ImageDecodeError, ValueError) as e:
        print(f"❌ Extraction failed: {e}")
        return 1
    except KeyboardInterrupt:
        print("\n⏹️  Extraction interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
