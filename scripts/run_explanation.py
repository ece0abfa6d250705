import argparse
import sys
from pathlib import Path

import joblib
import polars as pl

sys.path.append(str(Path(__file__).resolve().parents[1]))

from packages.lumen_lib.config import Settings, settings as default_settings
from packages.lumen_lib.logging import LogManager
from packages.xai_core.explainer import DecisionExplainer
from packages.xai_core.importance import FeatureImportanceAnalyzer


def main():
    parser = argparse.ArgumentParser(description="Lumen Explanation Command Center")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # A. `explain` command
    parser_explain = subparsers.add_parser(
        "explain", help="Explain the model's prediction for one row of a dataset."
    )
    parser_explain.add_argument("model", type=Path, help="Path to a joblib-dumped estimator.")
    parser_explain.add_argument("data", type=Path, help="CSV with feature columns (and target).")
    parser_explain.add_argument("--row", type=int, default=0, help="Row index to explain.")

    # B. `importance` command
    parser_importance = subparsers.add_parser(
        "importance", help="Run the full feature importance report."
    )
    parser_importance.add_argument("model", type=Path, help="Path to a joblib-dumped estimator.")
    parser_importance.add_argument("data", type=Path, help="CSV with feature columns and target.")

    for p in (parser_explain, parser_importance):
        p.add_argument("--config", type=Path, default=None, help="Optional YAML settings file.")

    args = parser.parse_args()

    settings = Settings.from_yaml(args.config) if args.config else default_settings
    log_manager = LogManager(service_name=f"lumen-{args.command}", debug=settings.system.debug)
    logger = log_manager.get_logger("main")

    if not args.model.exists() or not args.data.exists():
        logger.error(f"Missing input: {args.model if not args.model.exists() else args.data}")
        sys.exit(1)

    model = joblib.load(args.model)
    df = pl.read_csv(args.data)

    target_col = settings.importance.target_column
    time_col = settings.importance.time_column
    feature_names = [c for c in df.columns if c not in (target_col, time_col)]
    X = df.select(feature_names).to_pandas()

    if args.command == "explain":
        explainer = DecisionExplainer.from_model(model, X, settings=settings, logger=logger)
        instance = X.iloc[args.row]
        history = df.with_row_index("_row").filter(pl.col("_row") != args.row).drop("_row")
        explanation = explainer.explain_decision(instance, feature_names, training_data=history)

        print("\n--- Rationale ---")
        print(explanation.rationale)
        print("\n--- Key Factors ---")
        for factor in explanation.key_factors:
            name, contribution, impact = factor.as_tuple()
            print(f"{name:<24} {contribution:+.4f}  {impact}")
        print("\n--- Counterfactuals ---")
        for cf in explanation.counterfactuals:
            print(f"{cf.description} (impact={cf.expected_impact:.4f}, feasibility={cf.feasibility:.2f})")

    elif args.command == "importance":
        if target_col not in df.columns:
            logger.error(f"Target column '{target_col}' not found in {args.data}.")
            sys.exit(1)
        analyzer = FeatureImportanceAnalyzer(settings=settings, logger=logger)
        temporal = df if time_col in df.columns else None
        report = analyzer.comprehensive_importance_analysis(
            model, X, df[target_col].to_numpy(), feature_names, temporal_data=temporal
        )

        print("\n--- 🏆 Global Importance ---")
        for factor in report.global_importance:
            print(
                f"{factor.feature_name:<24} {factor.importance_score:.4f}  "
                f"{factor.significance:<10} stability={factor.stability_score:.2f}"
            )
        if report.feature_groups:
            print("\n--- Correlated Groups ---")
            for group_id, members in report.feature_groups.items():
                print(f"{group_id}: {', '.join(members)}")


if __name__ == "__main__":
    main()
