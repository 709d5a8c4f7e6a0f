"""
Retirement and Health Study.

Research Question: Does retirement affect physical and mental health?

Design: Fuzzy RD at the state pension age (SPA). Eligibility for the state
pension switches on at age_Sd = 0; retirement responds imperfectly, so
eligibility is the instrument for retirement.

Identification: Local randomization. Within a window selected from the
balance of pre-treatment covariates (born in Britain, white, school-leaving
age, region), eligibility is treated as randomly assigned and inference is
by randomization.

Key files:
- src/survey_data.py: Survey columns and Stata loader
- src/aggregation.py: Means by age relative to SPA
- src/plots.py: Descriptive charts with the SPA reference line
- src/analysis.py: End-to-end analysis pipeline
- src/cli.py: Command-line interface
"""
