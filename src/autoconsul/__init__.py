"""autoconsul - самоорганизующийся кластер consul-агентов через общий реестр в объектном хранилище."""

__version__ = "0.1.0"
