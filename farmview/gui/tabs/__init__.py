# FarmView Tab Modules
"""
Pages of the FarmView navigation.

Tabs:
- Dashboard: Headline figures and charts of the current farm
- Farms: Farm registry
- MapEditor: Draw, edit, measure and import/export blocks
- Applications: Chemical application log
- Team: Team roster
- Settings: Appearance, database, map and company settings
"""
