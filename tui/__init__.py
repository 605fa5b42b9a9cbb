# TUI Interface

from .widgets import GradientHeader, StatusPanel, StatTile, ActionButton
from .modals import ConfirmModal, ImageDetailModal, DeletingScreen
from .gallery import ImageTable
from .log_panel import LogPanel
