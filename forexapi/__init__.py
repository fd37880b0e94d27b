"""Virtual currency conversion API and dashboard."""
