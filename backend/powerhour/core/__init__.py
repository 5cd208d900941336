"""Session engine core: config, classifier, scoring, registry, scheduler, commentary."""
