"""Internal building blocks of :class:`pyhmi.worker.HmiWorker`."""
