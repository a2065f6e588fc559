import argparse
import json
import logging
import os

import numpy as np

from seqvec.config import VectorsConfiguration
from seqvec.iterators import AbstractSequenceIterator, BasicLineIterator, SentenceTransformer
from seqvec.run import DEFAULT_CORPUS, LOG_FORMAT
from seqvec.sequencevectors import SequenceVectors
from seqvec.tokenization import CommonPreprocessor, DefaultTokenizerFactory

# Figures for a trained model: loss curve and 2D PCA of element vectors.
# Run: python -m seqvec.visualize

logger = logging.getLogger(__name__)


def _pca2(X: np.ndarray) -> np.ndarray:
    """Project rows of X onto first 2 principal components (pure NumPy SVD).

    Args:
        X: Array of shape (n_samples, n_features).

    Returns:
        Array of shape (n_samples, 2).
    """
    X_centered = X - X.mean(axis=0)
    U, s, Vt = np.linalg.svd(X_centered, full_matrices=False)
    return (X_centered @ Vt[:2].T).astype(np.float64)


def main() -> None:
    """Train on the corpus (vocabulary built inside fit), save figures and history."""
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    ap = argparse.ArgumentParser()
    ap.add_argument("--save_dir", type=str, default="figures")
    ap.add_argument("--file", type=str, default=DEFAULT_CORPUS)
    ap.add_argument("--epochs", type=int, default=3)
    ap.add_argument("--dim", type=int, default=64)
    ap.add_argument("--min-count", type=int, default=5)
    ap.add_argument("--batch-size", type=int, default=32)
    ap.add_argument("--max-labels", type=int, default=50)
    ap.add_argument("--seed", type=int, default=42)
    args = ap.parse_args()

    transformer = SentenceTransformer(
        BasicLineIterator(args.file), DefaultTokenizerFactory(CommonPreprocessor())
    )
    config = VectorsConfiguration(
        min_word_frequency=args.min_count,
        layers_size=args.dim,
        batch_size=args.batch_size,
        epochs=args.epochs,
        reset_model=True,
        seed=args.seed,
    )
    model = SequenceVectors(config, AbstractSequenceIterator(transformer))
    history = model.fit()

    os.makedirs(args.save_dir, exist_ok=True)
    with open(os.path.join(args.save_dir, "loss_history.json"), "w") as f:
        json.dump(history, f, indent=0)

    steps = [h["step"] for h in history]
    losses = [h["loss"] for h in history]
    labels = model.vocab_labels()
    coords = _pca2(model.lookup_table.vectors())
    try:
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
    except ImportError:
        logger.warning("matplotlib not installed; skipping figures. pip install matplotlib")
        return

    plt.figure(figsize=(6, 4))
    kwargs = {"color": "C0"}
    if len(steps) <= 20:
        kwargs["marker"] = "o"
        kwargs["markersize"] = 4
    plt.plot(steps, losses, **kwargs)
    plt.xlabel("Step")
    plt.ylabel("Loss")
    plt.title("Training loss")
    plt.tight_layout()
    loss_path = os.path.join(args.save_dir, "loss_curve.png")
    plt.savefig(loss_path, dpi=120)
    plt.close()
    logger.info("Saved %s", loss_path)

    plt.figure(figsize=(8, 6))
    plt.scatter(coords[:, 0], coords[:, 1], alpha=0.7, s=20)
    for i in range(min(args.max_labels, len(labels))):
        plt.annotate(labels[i], (coords[i, 0], coords[i, 1]), fontsize=7, alpha=0.9)
    plt.xlabel("PC1")
    plt.ylabel("PC2")
    plt.title("Element vectors (PCA)")
    plt.tight_layout()
    emb_path = os.path.join(args.save_dir, "embeddings_pca.png")
    plt.savefig(emb_path, dpi=120)
    plt.close()
    logger.info("Saved %s", emb_path)


if __name__ == "__main__":
    main()
