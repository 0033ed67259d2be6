from .dashboard import AdminDashboard, questions_table, responses_table, render_dashboard

__all__ = [
    'AdminDashboard',
    'questions_table',
    'responses_table',
    'render_dashboard',
]
