#!/usr/bin/env python
"""
Import Labeled Faces

This script seeds the embedding store from a directory with one sub-directory
per label:

    labels/
        alice/1.jpg
        alice/2.jpg
        bob/1.jpg

The first images of each label (sorted by file name) are run through the
detector and enrolled under the directory name. Labels that are already
enrolled are left untouched.

Usage:
    python -m faceid.cli.import_labels <labels_dir> [--images-per-label 2]
"""
import argparse
import asyncio
import sys
import time
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from tqdm import tqdm

from faceid.core.config import settings
from faceid.core.container import ServiceContainer
from faceid.core.exceptions import FaceRecognitionError
from faceid.core.logging import get_logger, setup_logging
from faceid.domain.value_objects.recognition import Frame, LabelImportResult

logger = get_logger(__name__)

IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png")


class LabelDirectoryImporter:
    """Imports labeled face images from a directory tree."""

    def __init__(
        self,
        labels_dir: Path,
        images_per_label: int = 2,
        container: Optional[ServiceContainer] = None,
    ):
        """Initialize the importer.

        Args:
            labels_dir: Directory holding one sub-directory per label
            images_per_label: Number of images to enroll per label
            container: Service container; a default one is created when omitted
        """
        self.labels_dir = labels_dir
        self.images_per_label = images_per_label
        self.container = container or ServiceContainer()

        # Stats
        self.stats = {
            "total_labels": 0,
            "created_labels": 0,
            "skipped_labels": 0,
            "failed_labels": 0,
            "embeddings": 0,
            "rejected_images": 0,
            "total_time": 0.0,
        }

    def list_labels(self) -> Dict[str, List[Path]]:
        """List labels and the images to import for each.

        Returns:
            Mapping of label to image paths, labels sorted by name
        """
        labels = {}
        for label_dir in sorted(p for p in self.labels_dir.iterdir() if p.is_dir()):
            images = sorted(
                p for p in label_dir.iterdir()
                if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES
            )
            labels[label_dir.name] = images[: self.images_per_label]
        return labels

    def iter_frames(self, labels: Dict[str, List[Path]]) -> Iterator[Tuple[str, Frame]]:
        """Decode images lazily; undecodable images become empty frames."""
        for label, images in labels.items():
            for image_path in images:
                try:
                    yield label, Frame.from_bytes(image_path.read_bytes())
                except FaceRecognitionError as e:
                    logger.warning("Failed to decode image", path=str(image_path), error=str(e))
                    yield label, Frame.empty()

    async def import_labels(self) -> List[LabelImportResult]:
        """Import all labels.

        Returns:
            One result per label
        """
        labels = self.list_labels()
        self.stats["total_labels"] = len(labels)
        if not labels:
            print(f"No label directories found in {self.labels_dir}")
            return []

        print(f"Found {len(labels)} labels in {self.labels_dir}")
        await self.container.initialize()

        start_time = time.time()
        results = []
        try:
            for label, images in tqdm(labels.items(), desc="Importing labels"):
                frames = list(self.iter_frames({label: images}))
                try:
                    label_results = await self.container.enrollment_workflow.import_batch(frames)
                except FaceRecognitionError as e:
                    logger.error("Failed to import label", label=label, error=str(e))
                    self.stats["failed_labels"] += 1
                    continue

                for result in label_results:
                    self._record(result)
                results.extend(label_results)
        finally:
            self.stats["total_time"] = time.time() - start_time
            await self.container.cleanup()

        return results

    def _record(self, result: LabelImportResult) -> None:
        if result.status == "created":
            self.stats["created_labels"] += 1
        elif result.status == "already_enrolled":
            self.stats["skipped_labels"] += 1
        else:
            self.stats["failed_labels"] += 1
        self.stats["embeddings"] += result.embeddings_count
        self.stats["rejected_images"] += result.rejected_frames

    def print_stats(self) -> None:
        """Print statistics about the import."""
        print("\n===== Import Statistics =====")
        print(f"Labels directory: {self.labels_dir}")
        print(f"Total labels: {self.stats['total_labels']}")
        print(f"Created labels: {self.stats['created_labels']}")
        print(f"Skipped labels (already enrolled): {self.stats['skipped_labels']}")
        print(f"Failed labels: {self.stats['failed_labels']}")
        print(f"Embeddings written: {self.stats['embeddings']}")
        print(f"Rejected images (not exactly one face): {self.stats['rejected_images']}")
        print(f"Total time: {self.stats['total_time']:.2f} seconds")
        print("=============================")


async def main(args: argparse.Namespace) -> int:
    """Main entry point."""
    labels_dir = Path(args.labels_dir)
    if not labels_dir.is_dir():
        logger.error("Labels directory not found", path=str(labels_dir))
        return 1

    importer = LabelDirectoryImporter(
        labels_dir=labels_dir,
        images_per_label=args.images_per_label,
    )

    try:
        await importer.import_labels()
    except FaceRecognitionError as e:
        logger.error("Import failed", error=str(e))
        return 1

    importer.print_stats()
    return 0


def run() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Import labeled face images into the embedding store")
    parser.add_argument("labels_dir", help="Directory with one sub-directory per label")
    parser.add_argument(
        "--images-per-label",
        type=int,
        default=settings.SEED_IMAGES_PER_LABEL,
        help="Number of images to enroll per label"
    )
    args = parser.parse_args()

    setup_logging()
    sys.exit(asyncio.run(main(args)))


if __name__ == "__main__":
    run()
