"""AI meta-tag optimisation module."""

from seo_analyzer.modules.meta_optimizer.optimizer import MetaOptimizer

__all__ = ["MetaOptimizer"]
