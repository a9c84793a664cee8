from collections import namedtuple
from pathlib import Path

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from sklearn.metrics import confusion_matrix, cohen_kappa_score

from conversion_report.config import TARGET, POSITIVE_LABEL, TARGET_LEVELS, ACCURACY_TOLERANCE
from conversion_report.models.train import TrainedModel
from conversion_report.utils import savefig_safe

Evaluation = namedtuple("Evaluation", ["method", "TP", "FP", "FN", "TN", "accuracy", "sensitivity",
                                       "specificity", "precision", "kappa"])


def _ratio(num, den):
    return float(num / den) if den > 0 else 0.0


def confusion_metrics(y_true, y_pred, positive=POSITIVE_LABEL, method=None) -> Evaluation:
    """Confusion counts plus derived rates, with ``positive`` as the event class."""
    y_true = np.asarray(y_true).astype(str); y_pred = np.asarray(y_pred).astype(str)
    negative = next((lv for lv in TARGET_LEVELS.values() if lv != positive), "neg")
    labels = [negative, str(positive)]
    tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=labels).ravel()
    total = tp + tn + fp + fn
    kappa = cohen_kappa_score(y_true, y_pred, labels=labels) if total else 0.0
    return Evaluation(method=method, TP=int(tp), FP=int(fp), FN=int(fn), TN=int(tn),
                      accuracy=_ratio(tp + tn, total),
                      sensitivity=_ratio(tp, tp + fn),
                      specificity=_ratio(tn, tn + fp),
                      precision=_ratio(tp, tp + fp),
                      kappa=0.0 if np.isnan(kappa) else float(kappa))


def evaluate_model(model: TrainedModel, validation: pd.DataFrame, target=TARGET) -> Evaluation:
    y_pred = model.estimator.predict(validation[model.features])
    return confusion_metrics(validation[target], y_pred, method=model.method)


def choose_model(evaluations, accuracy_tolerance=ACCURACY_TOLERANCE) -> Evaluation:
    """Pick the evaluation to act on.

    Accuracies within ``accuracy_tolerance`` of the best are treated as a tie,
    and the tie goes to sensitivity: a missed buyer costs more than a
    non-buyer who gets targeted by mistake.
    """
    evaluations = list(evaluations)
    if not evaluations:
        raise ValueError("no evaluations to choose from")
    best_acc = max(e.accuracy for e in evaluations)
    close = [e for e in evaluations if best_acc - e.accuracy <= accuracy_tolerance]
    return max(close, key=lambda e: (e.sensitivity, e.accuracy))


def plot_confusion_matrix(ev: Evaluation, path: Path, title=None):
    cm = np.array([[ev.TN, ev.FP], [ev.FN, ev.TP]])
    plt.figure(); plt.imshow(cm, cmap="Blues")
    for (i, j), v in np.ndenumerate(cm):
        plt.text(j, i, str(v), ha="center", va="center")
    plt.xticks([0, 1], ["pred no", "pred yes"]); plt.yticks([0, 1], ["true no", "true yes"])
    plt.title(title or f"Confusion matrix: {ev.method}")
    savefig_safe(path)
